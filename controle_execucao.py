"""
Controle de execução diária das regras
Seleciona as regras do minuto atual e garante no máximo uma execução
agendada por regra por dia (fuso de referência).
"""

import logging
from datetime import datetime
from typing import Any, Dict, List

from relogio import Relogio

logger = logging.getLogger(__name__)


class ControleExecucao:
    def __init__(self, db, relogio: Relogio = None):
        self.db = db
        self.relogio = relogio or Relogio()

    def regras_agendadas(self, agora: datetime) -> List[Dict[str, Any]]:
        """
        Linhas das regras ativas cujo horário HH:MM coincide com agora.

        Voltam cruas: a validação é feita regra a regra pelo motor, para
        que uma linha inválida não derrube as demais.
        """
        agora = agora.astimezone(self.relogio.tz)
        return self.db.listar_regras_agendadas(agora.hour, agora.minute)

    def ja_executada_hoje(self, regra_id, agora: datetime) -> bool:
        """Existe log desta regra desde a meia-noite de hoje?"""
        return self.db.existe_log_execucao_desde(regra_id, self.relogio.inicio_do_dia(agora))

    def reservar(self, regra_id, user_id, agora: datetime) -> bool:
        """
        Reserva atômica (regra_id, dia). False quando outra invocação já
        reservou o dia; o banco garante via UNIQUE.
        """
        dia = agora.astimezone(self.relogio.tz).date()
        return self.db.reservar_execucao(regra_id, user_id, dia, agora)

    def liberar(self, regra_id, user_id, agora: datetime) -> bool:
        """Checa o log do dia e, se livre, reserva a execução"""
        if self.ja_executada_hoje(regra_id, agora):
            logger.info(f"Regra {regra_id} já executada hoje, ignorando")
            return False
        if not self.reservar(regra_id, user_id, agora):
            logger.info(f"Regra {regra_id} já reservada hoje por outra execução, ignorando")
            return False
        return True
