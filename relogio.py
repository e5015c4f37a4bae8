"""
Relógio e espera injetáveis
O motor nunca lê o relógio do sistema nem dorme diretamente: recebe um
Relogio (hora atual no fuso de referência) e uma Espera (pausa entre envios).
"""

import time
import logging
from datetime import datetime, date, time as dtime

import pytz

logger = logging.getLogger(__name__)


class Relogio:
    """Hora atual no timezone de referência (padrão America/Sao_Paulo)"""

    def __init__(self, timezone='America/Sao_Paulo'):
        self.tz = pytz.timezone(timezone) if isinstance(timezone, str) else timezone

    def agora(self) -> datetime:
        return datetime.now(self.tz)

    def hoje(self) -> date:
        return self.agora().date()

    def inicio_do_dia(self, referencia: datetime = None) -> datetime:
        """Meia-noite do dia de referência, tz-aware"""
        dia = (referencia or self.agora()).astimezone(self.tz).date()
        return self.tz.localize(datetime.combine(dia, dtime.min))


class Espera:
    """Pausa bloqueante entre envios (controle anti-spam)"""

    def aguardar(self, segundos: float):
        if segundos > 0:
            logger.debug(f"Aguardando {segundos}s antes do próximo envio")
            time.sleep(segundos)
