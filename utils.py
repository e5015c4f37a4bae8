"""
Funções Utilitárias do Sistema
Timezone brasileiro, formatação de datas/valores e telefones
"""

import re
import logging
from datetime import datetime, date
from typing import Optional, Union, Any

import pytz

# Timezone de referência do sistema (vencimentos, horários de envio)
TIMEZONE_BR = pytz.timezone('America/Sao_Paulo')

logger = logging.getLogger(__name__)

# === FUNÇÕES DE DATA E HORA ===

def parsear_data(valor: Union[date, datetime, str, None]) -> Optional[date]:
    """
    Normaliza um vencimento para date (granularidade de dia).

    Aceita date, datetime (hora descartada), 'AAAA-MM-DD' (formato do banco)
    e 'DD/MM/AAAA'. Retorna None quando não há data.
    """
    if valor is None or valor == '':
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    texto = str(valor).strip()
    if 'T' in texto:
        texto = texto.split('T', 1)[0]
    try:
        return datetime.strptime(texto, '%Y-%m-%d').date()
    except ValueError:
        data_br = parsear_data_br(texto)
        if data_br is None:
            raise ValueError(f"Data inválida: {valor!r}")
        return data_br

def parsear_data_br(data_str: str) -> Optional[date]:
    """Converte string em formato brasileiro para date"""
    try:
        return datetime.strptime(data_str, '%d/%m/%Y').date()
    except ValueError:
        try:
            return datetime.strptime(data_str, '%d/%m/%y').date()
        except ValueError:
            return None

def calcular_dias_entre(data1: Union[date, datetime, str], data2: Union[date, datetime, str]) -> int:
    """Diferença em dias inteiros (data1 - data2), ignorando hora do dia"""
    return (parsear_data(data1) - parsear_data(data2)).days

def formatar_data_br(dt: Union[datetime, date, str]) -> str:
    """Formata data no padrão brasileiro (DD/MM/AAAA)"""
    if isinstance(dt, str):
        try:
            dt = parsear_data(dt)
        except ValueError:
            return dt

    if isinstance(dt, datetime):
        dt = dt.date()

    return dt.strftime('%d/%m/%Y')

def formatar_datetime_br(dt: Union[datetime, str]) -> str:
    """Formata data/hora completa no padrão brasileiro"""
    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt.replace('Z', '+00:00'))
        except ValueError:
            return dt

    if dt.tzinfo is None:
        dt = TIMEZONE_BR.localize(dt)
    else:
        dt = dt.astimezone(TIMEZONE_BR)

    return dt.strftime('%d/%m/%Y às %H:%M')

# === FUNÇÕES DE FORMATAÇÃO ===

def formatar_moeda(valor: Union[float, int, str, Any]) -> str:
    """Formata valor monetário no padrão brasileiro"""
    try:
        if isinstance(valor, str):
            valor = float(valor.replace(',', '.'))

        return f"R$ {float(valor):,.2f}".replace(',', 'X').replace('.', ',').replace('X', '.')
    except (ValueError, TypeError):
        return "R$ 0,00"

def limpar_telefone(telefone: Optional[str]) -> str:
    """Remove formatação do telefone mantendo apenas números"""
    if not telefone:
        return ""
    return re.sub(r'\D', '', str(telefone))

def mascarar_telefone(telefone: Optional[str]) -> str:
    """Mascara telefone para logs: 5511****4321"""
    numeros = limpar_telefone(telefone)
    if len(numeros) <= 8:
        return numeros
    return numeros[:4] + '*' * (len(numeros) - 8) + numeros[-4:]
