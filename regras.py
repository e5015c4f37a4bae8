"""
Seleção de clientes para uma regra de cobrança
Aplica telefone + filtro de status + janela de período sobre a lista de
clientes do revendedor, preservando a ordem recebida.
"""

import logging
from datetime import date
from typing import Iterable, List, Tuple

from models import Cliente, RegraCobranca
from status_cliente import classificar_status, obter_status, STATUS_MAP, StatusConfig
from utils import calcular_dias_entre

logger = logging.getLogger(__name__)


def dentro_do_periodo(regra: RegraCobranca, vencimento: date, hoje: date) -> bool:
    """
    Filtro de janela de tempo.

    A diferença é em dias inteiros; para 'horas' o alvo fica fracionário e,
    na prática, só o próprio dia do vencimento passa.
    """
    if regra.valor_periodo <= 0:
        return True

    alvo = regra.alvo_dias
    diff = calcular_dias_entre(vencimento, hoje)

    if regra.direcao_periodo == 'before':
        return 0 <= diff <= alvo
    return diff <= 0 and abs(diff) <= alvo


def cliente_elegivel(regra: RegraCobranca, cliente: Cliente, hoje: date) -> bool:
    if not cliente.telefone or not str(cliente.telefone).strip():
        return False
    if cliente.vencimento is None:
        return False

    if regra.filtro_status:
        if classificar_status(cliente.vencimento, hoje) not in regra.filtro_status:
            return False

    return dentro_do_periodo(regra, cliente.vencimento, hoje)


def filtrar_clientes(regra: RegraCobranca, clientes: Iterable[Cliente], hoje: date) -> List[Cliente]:
    """Clientes que devem receber a mensagem da regra, na ordem recebida"""
    selecionados = [c for c in clientes if cliente_elegivel(regra, c, hoje)]
    logger.debug(f"Regra {regra.id}: {len(selecionados)} cliente(s) selecionado(s)")
    return selecionados


def gerar_preview(regra: RegraCobranca, clientes: Iterable[Cliente], hoje: date) -> List[Tuple[Cliente, StatusConfig]]:
    """Preview da tela de regras: clientes selecionados com o status de cada um"""
    return [(c, obter_status(c.vencimento, hoje)) for c in filtrar_clientes(regra, clientes, hoje)]


def descrever_filtros(regra: RegraCobranca) -> str:
    """Resumo legível dos filtros da regra"""
    partes = []
    if regra.filtro_status:
        # ordem canônica para o texto não variar
        keys = [k for k in STATUS_MAP if k in regra.filtro_status]
        partes.append(f"Status: {', '.join(keys)}")
    if regra.valor_periodo > 0:
        direcao = 'antes' if regra.direcao_periodo == 'before' else 'depois'
        partes.append(f"{regra.valor_periodo} {regra.tipo_periodo} {direcao} do vencimento")
    return " • ".join(partes) if partes else "Sem filtros"
