"""
Classificação do ciclo de vida da assinatura
Fonte única da regra vencimento x data de referência -> status.
Usada pelo motor de cobrança e pelo preview das regras.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional, Union

from utils import calcular_dias_entre

# Ordem canônica dos status
STATUS_KEYS = ('active', 'pre3', 'pre2', 'pre1', 'today', 'post1', 'post2', 'expired')


@dataclass(frozen=True)
class StatusConfig:
    key: str
    label: str
    descricao: str
    template_key: Optional[str]


STATUS_MAP: Dict[str, StatusConfig] = {
    'active': StatusConfig('active', 'Ativo', 'Assinatura ativa', None),
    'pre3': StatusConfig('pre3', 'Vence em 3 dias', 'Lembrete suave enviado', 'pre3_reminder'),
    'pre2': StatusConfig('pre2', 'Vence em 2 dias', 'Atenção necessária', 'pre2_reminder'),
    'pre1': StatusConfig('pre1', 'Vence amanhã', 'Lembrete direto enviado', 'pre1_reminder'),
    'today': StatusConfig('today', 'Vence hoje', 'Urgência, ação imediata', 'today_urgent'),
    'post1': StatusConfig('post1', 'Venceu ontem', 'Cobrança firme enviada', 'post1_charge'),
    'post2': StatusConfig('post2', 'Venceu há 2 dias', 'Situação crítica', 'post2_charge'),
    'expired': StatusConfig('expired', 'Vencido', 'Aviso final enviado', 'expired_final'),
}


def status_por_diferenca(diff: int) -> str:
    """Mapeia diferença em dias (vencimento - referência) para o status"""
    if diff > 3:
        return 'active'
    if diff == 3:
        return 'pre3'
    if diff == 2:
        return 'pre2'
    if diff == 1:
        return 'pre1'
    if diff == 0:
        return 'today'
    if diff == -1:
        return 'post1'
    if diff == -2:
        return 'post2'
    return 'expired'


def classificar_status(vencimento: Union[date, datetime, str],
                       referencia: Union[date, datetime, str]) -> str:
    """Classifica o cliente a partir do vencimento, em granularidade de dia"""
    return status_por_diferenca(calcular_dias_entre(vencimento, referencia))


def obter_status(vencimento, referencia) -> StatusConfig:
    """Status completo (label, descrição, template sugerido)"""
    return STATUS_MAP[classificar_status(vencimento, referencia)]


def listar_status() -> List[StatusConfig]:
    return [STATUS_MAP[key] for key in STATUS_KEYS]


def validar_status_keys(keys) -> frozenset:
    """Valida chaves de status vindas de fora (JSON); rejeita desconhecidas"""
    if keys is None:
        return frozenset()
    if isinstance(keys, str):
        keys = [keys]
    desconhecidas = [k for k in keys if k not in STATUS_MAP]
    if desconhecidas:
        raise ValueError(f"Status desconhecido(s) no filtro: {', '.join(map(str, desconhecidas))}")
    return frozenset(keys)
