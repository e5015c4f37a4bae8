"""
Disparo sequencial das mensagens de uma regra
Uma mensagem por cliente, com atraso aleatório entre envios e isolamento de
falhas: um envio que falha é registrado e o laço continua.
"""

import random
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from excecoes import ErroConfiguracao
from models import Cliente, CredencialWhatsApp, RegraCobranca, LogMensagem
from relogio import Espera, Relogio
from status_cliente import classificar_status
from templates import TemplateManager

logger = logging.getLogger(__name__)

ERRO_WHATSAPP_NAO_VINCULADO = "WhatsApp não vinculado"


@dataclass
class ResultadoDisparo:
    encontrados: int = 0
    enviados: int = 0
    falhas: int = 0
    erros: List[Dict[str, Any]] = field(default_factory=list)
    iniciado: bool = False


class Despachante:
    def __init__(self, provedor, db, template_manager: TemplateManager = None,
                 espera: Espera = None, relogio: Relogio = None, rng: random.Random = None):
        self.provedor = provedor
        self.db = db
        self.template_manager = template_manager or TemplateManager()
        self.espera = espera or Espera()
        self.relogio = relogio or Relogio()
        self.rng = rng or random.Random()

    def sortear_atraso(self, regra: RegraCobranca) -> int:
        """Segundos inteiros uniformes em [atraso_min, atraso_max]"""
        return self.rng.randint(regra.atraso_min, regra.atraso_max)

    def disparar(self, regra: RegraCobranca, clientes: List[Cliente],
                 credencial: Optional[CredencialWhatsApp], hoje: date) -> ResultadoDisparo:
        """Envia a mensagem da regra para cada cliente, em ordem"""
        if credencial is None or not credencial.valida:
            raise ErroConfiguracao(ERRO_WHATSAPP_NAO_VINCULADO)

        resultado = ResultadoDisparo(encontrados=len(clientes), iniciado=True)

        for indice, cliente in enumerate(clientes):
            texto = self.template_manager.processar_template(regra.modelo_mensagem, cliente)

            if indice > 0:
                self.espera.aguardar(self.sortear_atraso(regra))

            try:
                resposta = self.provedor.send_text(credencial.api_token, cliente.telefone, texto)
            except Exception as e:
                # falha de transporte conta como falha do envio
                resposta = {"success": False, "error": str(e)}

            if resposta.get("success"):
                resultado.enviados += 1
                self.db.registrar_log_mensagem(LogMensagem(
                    user_id=regra.user_id,
                    cliente_id=cliente.id,
                    regra_id=regra.id,
                    status_no_envio=classificar_status(cliente.vencimento, hoje),
                    modelo_usado=texto,
                    status_entrega='sent',
                    enviado_em=self.relogio.agora(),
                ))
                logger.info(f"Regra {regra.id}: mensagem enviada para {cliente.nome}")
            else:
                resultado.falhas += 1
                erro = resposta.get("error") or "Erro desconhecido"
                resultado.erros.append({
                    "cliente_id": cliente.id,
                    "cliente_nome": cliente.nome,
                    "erro": erro,
                })
                logger.warning(f"Regra {regra.id}: falha ao enviar para {cliente.nome}: {erro}")

        return resultado
