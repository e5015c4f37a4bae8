"""
Motor de Cobrança Automática
Invocado uma vez por minuto por um agendador externo: busca as regras do
horário, aplica o controle diário, seleciona clientes, dispara e registra.
O motor não mantém timers próprios.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from controle_execucao import ControleExecucao
from despachante import Despachante, ResultadoDisparo, ERRO_WHATSAPP_NAO_VINCULADO
from excecoes import ErroConfiguracao
from models import Cliente, RegraCobranca
from registro_execucao import RegistradorExecucao
from regras import filtrar_clientes
from relogio import Espera, Relogio
from templates import TemplateManager

logger = logging.getLogger(__name__)


class MotorCobranca:
    def __init__(self, db, provedor, relogio: Relogio = None, espera: Espera = None,
                 template_manager: TemplateManager = None, rng=None):
        """Monta o motor com as dependências injetadas"""
        self.db = db
        self.relogio = relogio or Relogio()
        self.controle = ControleExecucao(db, self.relogio)
        self.despachante = Despachante(
            provedor, db,
            template_manager=template_manager,
            espera=espera,
            relogio=self.relogio,
            rng=rng,
        )
        self.registrador = RegistradorExecucao(db)

    def executar(self, regra_id: Optional[Any] = None) -> Dict[str, Any]:
        """
        Uma invocação do motor.

        Sem regra_id: regras ativas do minuto atual, com controle diário.
        Com regra_id: execução manual daquela regra, ignorando horário e
        controle diário.

        O instante lido aqui vale para a invocação inteira: define o dia dos
        filtros e carimba o log, mesmo que o disparo atravesse a meia-noite.
        """
        agora = self.relogio.agora()
        manual = regra_id is not None

        if manual:
            row = self.db.buscar_regra(regra_id)
            rows = [row] if row else []
        else:
            rows = self.controle.regras_agendadas(agora)

        if not rows:
            logger.debug(f"Nenhuma regra para {agora.strftime('%H:%M')}")
            return {"message": "No rules to run now", "hour": agora.hour, "minute": agora.minute}

        logger.info(f"=== COBRANÇA AUTOMÁTICA: {len(rows)} regra(s) às {agora.strftime('%H:%M')} ===")

        total_enviado = 0
        ignoradas = 0
        for row in rows:
            if not manual and not self.controle.liberar(row['id'], row['user_id'], agora):
                ignoradas += 1
                continue

            try:
                regra = RegraCobranca.from_row(row)
            except (TypeError, ValueError) as e:
                logger.error(f"Regra {row['id']} com configuração inválida: {e}")
                self.registrador.registrar_invalida(row, e, agora, manual=manual)
                continue

            total_enviado += self.executar_regra(regra, agora, manual=manual)

        logger.info(f"=== COBRANÇA CONCLUÍDA: {total_enviado} mensagem(ns) enviada(s) ===")
        return {
            "success": True,
            "rules_processed": len(rows),
            "rules_skipped": ignoradas,
            "total_sent": total_enviado,
        }

    def executar_regra(self, regra: RegraCobranca, agora: datetime, manual: bool = False) -> int:
        """Seleciona, dispara e registra uma regra; retorna quantas foram enviadas"""
        hoje = agora.astimezone(self.relogio.tz).date()

        try:
            credencial = self.db.obter_credencial(regra.user_id)
            if credencial is None or not credencial.valida:
                raise ErroConfiguracao(ERRO_WHATSAPP_NAO_VINCULADO)

            clientes = [Cliente.from_row(row) for row in self.db.listar_clientes_cobranca(regra.user_id)]
            selecionados = filtrar_clientes(regra, clientes, hoje)
            logger.info(f"Regra {regra.id} ({regra.nome}): {len(selecionados)} de {len(clientes)} cliente(s)")

            resultado = self.despachante.disparar(regra, selecionados, credencial, hoje)

        except ErroConfiguracao as e:
            logger.error(f"Regra {regra.id}: {e}")
            resultado = ResultadoDisparo(erros=[{"erro": str(e)}])

        self.registrador.registrar(regra, resultado, agora, manual=manual)
        return resultado.enviados
