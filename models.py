"""
Modelos de dados do motor de cobrança automática
Define as estruturas lidas/gravadas no banco PostgreSQL
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, date
from typing import Any, Dict, FrozenSet, List, Optional

from status_cliente import validar_status_keys
from utils import parsear_data

# Multiplicador em dias por tipo de período
MULTIPLICADORES_PERIODO = {
    'horas': 1 / 24,
    'dias': 1,
    'semanas': 7,
    'meses': 30,
}

# Valores em inglês aceitos na fronteira
ALIASES_PERIODO = {
    'hours': 'horas',
    'days': 'dias',
    'weeks': 'semanas',
    'months': 'meses',
}

DIRECOES_PERIODO = ('before', 'after')

# Status de uma execução de regra
STATUS_EXECUCAO = {
    'completed': 'Concluída',
    'error': 'Erro',
    'no_matches': 'Nenhum cliente encontrado',
}

ATRASO_MINIMO = 3


@dataclass
class Cliente:
    """Cliente do revendedor (somente leitura para o motor)"""
    id: Any = None
    user_id: Any = None
    nome: str = ""
    telefone: Optional[str] = None
    plano: Optional[str] = None
    vencimento: Optional[date] = None
    valor: float = 0.0
    suspenso: bool = False
    servidor: Optional[str] = None
    usuario: Optional[str] = None
    senha: Optional[str] = None
    app: Optional[str] = None
    telas: Optional[int] = None

    def __post_init__(self):
        self.vencimento = parsear_data(self.vencimento)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Cliente':
        return cls(
            id=row.get('id'),
            user_id=row.get('user_id'),
            nome=row.get('nome') or "",
            telefone=row.get('telefone'),
            plano=row.get('plano'),
            vencimento=row.get('vencimento'),
            valor=float(row.get('valor') or 0),
            suspenso=bool(row.get('suspenso', False)),
            servidor=row.get('servidor'),
            usuario=row.get('usuario'),
            senha=row.get('senha'),
            app=row.get('app'),
            telas=row.get('telas'),
        )


@dataclass
class RegraCobranca:
    """
    Regra de cobrança automática definida pelo revendedor.

    Campos de filtro e agenda são validados na construção; valores vindos do
    banco como JSON/texto livre passam por from_row.
    """
    id: Any = None
    user_id: Any = None
    nome: str = ""
    ativa: bool = True
    modelo_mensagem: str = ""
    filtro_status: FrozenSet[str] = field(default_factory=frozenset)
    tipo_periodo: str = 'dias'
    valor_periodo: int = 0
    direcao_periodo: str = 'before'
    atraso_min: int = ATRASO_MINIMO
    atraso_max: int = 7
    hora_envio: int = 9
    minuto_envio: int = 0
    ultima_execucao: Optional[datetime] = None
    ultima_quantidade: Optional[int] = None
    total_enviado: int = 0

    def __post_init__(self):
        self.filtro_status = validar_status_keys(self.filtro_status)

        tipo = (self.tipo_periodo or 'dias').lower()
        tipo = ALIASES_PERIODO.get(tipo, tipo)
        if tipo not in MULTIPLICADORES_PERIODO:
            raise ValueError(f"Tipo de período inválido: {self.tipo_periodo}")
        self.tipo_periodo = tipo

        if self.valor_periodo is None:
            self.valor_periodo = 0
        if self.valor_periodo < 0:
            raise ValueError("valor_periodo não pode ser negativo")

        if self.direcao_periodo not in DIRECOES_PERIODO:
            raise ValueError(f"Direção de período inválida: {self.direcao_periodo}")

        if self.atraso_min < ATRASO_MINIMO:
            raise ValueError(f"atraso_min deve ser no mínimo {ATRASO_MINIMO} segundos")
        if self.atraso_max < self.atraso_min:
            raise ValueError("atraso_max deve ser maior ou igual a atraso_min")

        if not 0 <= self.hora_envio <= 23:
            raise ValueError(f"hora_envio inválida: {self.hora_envio}")
        if not 0 <= self.minuto_envio <= 59:
            raise ValueError(f"minuto_envio inválido: {self.minuto_envio}")

        self.total_enviado = self.total_enviado or 0

    @property
    def alvo_dias(self) -> float:
        """Janela do filtro de período convertida para dias"""
        return self.valor_periodo * MULTIPLICADORES_PERIODO[self.tipo_periodo]

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'RegraCobranca':
        filtro = row.get('filtro_status') or []
        if isinstance(filtro, str):
            filtro = json.loads(filtro)
        return cls(
            id=row.get('id'),
            user_id=row.get('user_id'),
            nome=row.get('nome') or "",
            ativa=bool(row.get('ativa', True)),
            modelo_mensagem=row.get('modelo_mensagem') or "",
            filtro_status=filtro,
            tipo_periodo=row.get('tipo_periodo') or 'dias',
            valor_periodo=int(row.get('valor_periodo') or 0),
            direcao_periodo=row.get('direcao_periodo') or 'before',
            atraso_min=int(row.get('atraso_min') if row.get('atraso_min') is not None else ATRASO_MINIMO),
            atraso_max=int(row.get('atraso_max') if row.get('atraso_max') is not None else 7),
            hora_envio=int(row.get('hora_envio') or 0),
            minuto_envio=int(row.get('minuto_envio') or 0),
            ultima_execucao=row.get('ultima_execucao'),
            ultima_quantidade=row.get('ultima_quantidade'),
            total_enviado=int(row.get('total_enviado') or 0),
        )


@dataclass
class CredencialWhatsApp:
    """Instância WhatsApp (uazapi) vinculada ao dono da regra"""
    user_id: Any = None
    instance_key: Optional[str] = None
    api_token: Optional[str] = None

    @property
    def valida(self) -> bool:
        return bool(self.api_token)


@dataclass
class LogExecucaoRegra:
    """Resumo de uma execução de regra (append-only)"""
    regra_id: Any = None
    user_id: Any = None
    clientes_encontrados: int = 0
    mensagens_enviadas: int = 0
    mensagens_falhas: int = 0
    erros: List[Dict[str, Any]] = field(default_factory=list)
    status: str = 'completed'
    manual: bool = False
    executado_em: Optional[datetime] = None
    id: Any = None


@dataclass
class LogMensagem:
    """Mensagem individual enviada com sucesso"""
    user_id: Any = None
    cliente_id: Any = None
    regra_id: Any = None
    status_no_envio: str = ""
    modelo_usado: str = ""
    status_entrega: str = 'sent'
    enviado_em: Optional[datetime] = None
    id: Any = None
