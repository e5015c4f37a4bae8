"""
Exceções do motor de cobrança automática
"""


class ErroConfiguracao(RuntimeError):
    """Configuração ausente/inválida (ex.: WhatsApp não vinculado ao dono da regra)"""

