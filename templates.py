"""
Processamento de Templates de Cobrança
Substitui variáveis dinâmicas ({nome}, {plano}, {vencimento}, ...) pelos
dados do cliente.
"""

import re
import logging
from typing import Dict, Any, List, Optional

from models import Cliente
from utils import formatar_data_br, formatar_moeda

logger = logging.getLogger(__name__)

PLANO_PADRAO = 'Sem plano'


class TemplateManager:
    def __init__(self, configuracoes: Optional[Dict[str, Any]] = None):
        """Inicializa o gerenciador de templates"""
        self.configuracoes = configuracoes or {}

        # Variáveis garantidas no envio automático
        self.variaveis_obrigatorias = {
            'nome': 'Nome do cliente',
            'plano': 'Plano do cliente',
            'vencimento': 'Data de vencimento formatada (DD/MM/AAAA)',
        }

        # Variáveis extras dos envios avulsos
        self.variaveis_opcionais = {
            'valor': 'Valor mensal do plano',
            'servidor': 'Servidor do cliente',
            'usuario': 'Usuário de acesso',
            'senha': 'Senha de acesso',
            'app': 'Aplicativo utilizado',
            'telas': 'Quantidade de telas',
            'pix': 'Chave PIX para pagamento',
        }

    @property
    def variaveis_disponiveis(self) -> Dict[str, str]:
        return {**self.variaveis_obrigatorias, **self.variaveis_opcionais}

    def validar_template(self, conteudo: str) -> List[str]:
        """Valida conteúdo do template verificando variáveis"""
        erros = []

        for variavel in re.findall(r'\{(\w+)\}', conteudo or ''):
            if variavel not in self.variaveis_disponiveis:
                erros.append(f"Variável desconhecida: {{{variavel}}}")

        if (conteudo or '').count('{') != (conteudo or '').count('}'):
            erros.append("Chaves desbalanceadas no template")

        return erros

    def processar_template(self, conteudo: str, cliente: Cliente, completo: bool = False) -> str:
        """
        Substitui as variáveis pelos dados do cliente.

        Sem `completo` apenas {nome}, {plano} e {vencimento} são trocadas,
        como no envio automático; as demais ficam no texto.
        """
        dados = self._preparar_dados_cliente(cliente, completo)

        texto = conteudo or ''
        for variavel, valor in dados.items():
            texto = texto.replace(f"{{{variavel}}}", str(valor))
        return texto

    def _preparar_dados_cliente(self, cliente: Cliente, completo: bool) -> Dict[str, Any]:
        dados = {
            'nome': cliente.nome or '',
            'plano': cliente.plano or PLANO_PADRAO,
            'vencimento': formatar_data_br(cliente.vencimento) if cliente.vencimento else 'Não definido',
        }
        if not completo:
            return dados

        dados['valor'] = formatar_moeda(cliente.valor)
        dados['servidor'] = cliente.servidor or ''
        dados['usuario'] = cliente.usuario or ''
        dados['senha'] = cliente.senha or ''
        dados['app'] = cliente.app or ''
        dados['telas'] = cliente.telas if cliente.telas is not None else ''
        dados['pix'] = self.configuracoes.get('pix_chave', '')
        return dados
