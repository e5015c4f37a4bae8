"""
Registro das execuções de regras e estatísticas acumuladas
Uma linha em logs_regras_cobranca por execução; depois atualiza
ultima_execucao / ultima_quantidade / total_enviado da regra.
"""

import logging
from datetime import datetime

from models import LogExecucaoRegra, RegraCobranca
from despachante import ResultadoDisparo

logger = logging.getLogger(__name__)


def calcular_status(encontrados: int, enviados: int, falhas: int, iniciado: bool) -> str:
    """completed / error / no_matches"""
    if encontrados == 0:
        return 'no_matches' if iniciado else 'error'
    if not iniciado:
        return 'error'
    if falhas == encontrados:
        return 'error'
    return 'completed'


class RegistradorExecucao:
    def __init__(self, db):
        self.db = db

    def registrar(self, regra: RegraCobranca, resultado: ResultadoDisparo,
                  executado_em: datetime, manual: bool = False) -> LogExecucaoRegra:
        status = calcular_status(resultado.encontrados, resultado.enviados,
                                 resultado.falhas, resultado.iniciado)
        log = LogExecucaoRegra(
            regra_id=regra.id,
            user_id=regra.user_id,
            clientes_encontrados=resultado.encontrados,
            mensagens_enviadas=resultado.enviados,
            mensagens_falhas=resultado.falhas,
            erros=list(resultado.erros),
            status=status,
            manual=manual,
            executado_em=executado_em,
        )
        log.id = self.db.inserir_log_execucao(log)

        # ultima_quantidade só muda quando houve tentativa de envio
        ultima_quantidade = resultado.enviados if resultado.encontrados > 0 and resultado.iniciado else None
        self.db.atualizar_estatisticas_regra(
            regra.id,
            executado_em=executado_em,
            enviados=resultado.enviados,
            ultima_quantidade=ultima_quantidade,
        )

        regra.ultima_execucao = executado_em
        if ultima_quantidade is not None:
            regra.ultima_quantidade = ultima_quantidade
        regra.total_enviado = (regra.total_enviado or 0) + resultado.enviados

        logger.info(
            f"Regra {regra.id} ({regra.nome}): status={status} encontrados={resultado.encontrados} "
            f"enviados={resultado.enviados} falhas={resultado.falhas}"
        )
        return log

    def registrar_invalida(self, row, erro, executado_em: datetime, manual: bool = False) -> LogExecucaoRegra:
        """Log de erro para uma regra cuja linha no banco não é válida"""
        log = LogExecucaoRegra(
            regra_id=row.get('id'),
            user_id=row.get('user_id'),
            erros=[{"erro": f"Regra inválida: {erro}"}],
            status='error',
            manual=manual,
            executado_em=executado_em,
        )
        log.id = self.db.inserir_log_execucao(log)
        self.db.atualizar_estatisticas_regra(row.get('id'), executado_em=executado_em, enviados=0)
        return log
