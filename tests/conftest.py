"""
Fixtures compartilhadas: banco em memória, provedor falso, relógio fixo
e espera que avança o relógio em vez de dormir.
"""

import itertools
from datetime import datetime, timedelta

import pytest

from models import CredencialWhatsApp
from relogio import Relogio


class RelogioFixo(Relogio):
    """Relógio parado num instante; avança só quando a espera manda"""

    def __init__(self, instante: datetime, timezone='America/Sao_Paulo'):
        super().__init__(timezone)
        if instante.tzinfo is None:
            instante = self.tz.localize(instante)
        self.instante = instante

    def agora(self):
        return self.instante

    def avancar(self, segundos):
        self.instante = self.instante + timedelta(seconds=segundos)


class EsperaSimulada:
    """Registra as pausas pedidas e avança o relógio no lugar de dormir"""

    def __init__(self, relogio: RelogioFixo):
        self.relogio = relogio
        self.pausas = []

    def aguardar(self, segundos):
        self.pausas.append(segundos)
        self.relogio.avancar(segundos)


class ProvedorFalso:
    """
    Substitui a uazapi. Telefones em `falhar_para` recebem resposta de erro,
    telefones em `explodir_para` levantam exceção de transporte.
    """

    def __init__(self, relogio=None, falhar_para=(), explodir_para=()):
        self.relogio = relogio
        self.falhar_para = set(falhar_para)
        self.explodir_para = set(explodir_para)
        self.enviados = []

    def send_text(self, api_token, phone, message):
        self.enviados.append({
            'token': api_token,
            'phone': phone,
            'text': message,
            'em': self.relogio.agora() if self.relogio else None,
        })
        if phone in self.explodir_para:
            raise ConnectionError("conexão recusada")
        if phone in self.falhar_para:
            return {"success": False, "status_code": 500, "error": '{"error":"instance disconnected"}'}
        return {"success": True, "status_code": 200, "data": {"id": len(self.enviados)}}


class BancoFalso:
    """Implementa em memória os métodos do DatabaseManager usados pelo motor"""

    def __init__(self):
        self.regras = {}
        self.clientes = []
        self.credenciais = {}
        self.logs_execucao = []
        self.logs_mensagens = []
        self.reservas = set()
        self._ids = itertools.count(1)

    # --- carga ---

    def adicionar_regra(self, **campos):
        row = {
            'id': campos.pop('id', None) or next(self._ids),
            'user_id': 1,
            'nome': 'Lembrete',
            'ativa': True,
            'modelo_mensagem': 'Olá {nome}, seu plano {plano} vence em {vencimento}.',
            'filtro_status': [],
            'tipo_periodo': 'dias',
            'valor_periodo': 0,
            'direcao_periodo': 'before',
            'atraso_min': 3,
            'atraso_max': 7,
            'hora_envio': 9,
            'minuto_envio': 0,
            'ultima_execucao': None,
            'ultima_quantidade': None,
            'total_enviado': 0,
        }
        row.update(campos)
        self.regras[row['id']] = row
        return row

    def adicionar_cliente(self, **campos):
        row = {
            'id': next(self._ids),
            'user_id': 1,
            'nome': 'Cliente',
            'telefone': '5511999990000',
            'plano': 'Mensal',
            'vencimento': None,
            'valor': 30.0,
            'suspenso': False,
        }
        row.update(campos)
        self.clientes.append(row)
        return row

    def vincular_whatsapp(self, user_id=1, api_token='tok-123'):
        self.credenciais[user_id] = CredencialWhatsApp(
            user_id=user_id, instance_key=f'inst-{user_id}', api_token=api_token)

    # --- interface do DatabaseManager ---

    def listar_regras_agendadas(self, hora, minuto):
        return [dict(r) for r in self.regras.values()
                if r['ativa'] and r['hora_envio'] == hora and r['minuto_envio'] == minuto]

    def buscar_regra(self, regra_id):
        row = self.regras.get(regra_id)
        return dict(row) if row else None

    def atualizar_estatisticas_regra(self, regra_id, executado_em, enviados, ultima_quantidade=None):
        row = self.regras[regra_id]
        row['ultima_execucao'] = executado_em
        if ultima_quantidade is not None:
            row['ultima_quantidade'] = ultima_quantidade
        row['total_enviado'] = (row['total_enviado'] or 0) + enviados
        return 1

    def listar_clientes_cobranca(self, user_id):
        return [dict(c) for c in self.clientes if c['user_id'] == user_id and not c['suspenso']]

    def obter_credencial(self, user_id):
        return self.credenciais.get(user_id)

    def existe_log_execucao_desde(self, regra_id, desde):
        return any(log.regra_id == regra_id and log.executado_em >= desde for log in self.logs_execucao)

    def reservar_execucao(self, regra_id, user_id, dia, agora):
        if (regra_id, dia) in self.reservas:
            return False
        self.reservas.add((regra_id, dia))
        return True

    def inserir_log_execucao(self, log):
        self.logs_execucao.append(log)
        return len(self.logs_execucao)

    def registrar_log_mensagem(self, log):
        self.logs_mensagens.append(log)
        return len(self.logs_mensagens)

    def listar_logs_execucao(self, regra_id, limit=20):
        logs = [log for log in self.logs_execucao if log.regra_id == regra_id]
        logs.sort(key=lambda log: log.executado_em, reverse=True)
        return [
            {
                'id': log.id,
                'clientes_encontrados': log.clientes_encontrados,
                'mensagens_enviadas': log.mensagens_enviadas,
                'mensagens_falhas': log.mensagens_falhas,
                'erros': log.erros,
                'status': log.status,
                'manual': log.manual,
                'executado_em': log.executado_em,
            }
            for log in logs[:limit]
        ]


@pytest.fixture
def relogio():
    return RelogioFixo(datetime(2025, 6, 10, 9, 0))


@pytest.fixture
def espera(relogio):
    return EsperaSimulada(relogio)


@pytest.fixture
def provedor(relogio):
    return ProvedorFalso(relogio)


@pytest.fixture
def db():
    return BancoFalso()
