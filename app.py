#!/usr/bin/env python3
"""
Aplicação Web - Cobrança Automática
Servidor Flask com o endpoint chamado pelo cron externo (1x por minuto)
"""

import os
import logging
from datetime import datetime

from flask import Flask, request, jsonify

from config import get_config
from database import DatabaseManager
from excecoes import ErroConfiguracao
from models import Cliente, RegraCobranca, STATUS_EXECUCAO
from motor_cobranca import MotorCobranca
from regras import gerar_preview, descrever_filtros
from relogio import Relogio
from status_cliente import listar_status
from templates import TemplateManager
from uazapi_api import UazapiAPI
from utils import formatar_data_br, formatar_datetime_br

logger = logging.getLogger(__name__)


def create_app(db=None, provedor=None, relogio=None, espera=None, config=None):
    """
    Cria a aplicação Flask.

    Dependências não informadas são montadas a partir da configuração;
    o provedor uazapi só é criado na primeira invocação do cron, para que
    a falta de UAZAPI_SUBDOMAIN vire erro da invocação e não do boot.
    """
    config = config or get_config()
    app = Flask(__name__)

    relogio = relogio or Relogio(config.system.timezone)
    estado = {'db': db, 'provedor': provedor}

    def obter_db():
        if estado['db'] is None:
            estado['db'] = DatabaseManager(
                database_url=config.database.url,
                connection_params=config.database.connection_params(),
            )
        return estado['db']

    def obter_motor():
        if estado['provedor'] is None:
            estado['provedor'] = UazapiAPI(config.uazapi.subdomain, timeout=config.uazapi.timeout)
        return MotorCobranca(obter_db(), estado['provedor'], relogio=relogio, espera=espera)

    def token_valido():
        esperado = config.cobranca.cron_token
        if not esperado:
            return True
        recebido = request.headers.get('X-Cron-Token') or ''
        auth = request.headers.get('Authorization') or ''
        if auth.startswith('Bearer '):
            recebido = recebido or auth[len('Bearer '):]
        return recebido == esperado

    app.config['obter_motor'] = obter_motor

    @app.route('/', methods=['GET'])
    def health_check():
        """Health check"""
        return jsonify({
            'status': 'healthy',
            'service': 'Cobrança Automática - Gestão de Clientes',
            'timestamp': relogio.agora().isoformat(),
            'version': '1.0.0'
        }), 200

    @app.route('/cron/cobrancas', methods=['GET', 'POST'])
    def cron_cobrancas():
        """Invocação do motor; body opcional {"rule_id": ...} executa uma regra manualmente"""
        if not token_valido():
            return jsonify({'error': 'Não autorizado'}), 401

        corpo = request.get_json(silent=True)
        if corpo is None:
            corpo = {}
        if not isinstance(corpo, dict):
            return jsonify({'error': 'Corpo JSON inválido'}), 400
        regra_id = corpo.get('rule_id') or None
        if regra_id is not None:
            try:
                regra_id = int(regra_id)
            except (TypeError, ValueError):
                return jsonify({'error': 'rule_id inválido'}), 400

        try:
            resumo = obter_motor().executar(regra_id=regra_id)
            return jsonify(resumo), 200
        except ErroConfiguracao as e:
            logger.error(f"Configuração inválida para cobrança: {e}")
            return jsonify({'error': str(e)}), 500
        except Exception as e:
            logger.error(f"Erro na cobrança automática: {e}", exc_info=True)
            return jsonify({'error': str(e)}), 500

    @app.route('/status', methods=['GET'])
    def status_clientes():
        """Status do ciclo de vida, na ordem canônica"""
        return jsonify([
            {'key': s.key, 'label': s.label, 'descricao': s.descricao, 'template_key': s.template_key}
            for s in listar_status()
        ]), 200

    @app.route('/regras/<int:regra_id>/preview', methods=['GET'])
    def preview_regra(regra_id):
        """Clientes que a regra atingiria hoje, com o status e a mensagem de cada um"""
        db_atual = obter_db()
        row = db_atual.buscar_regra(regra_id)
        if not row:
            return jsonify({'error': 'Regra não encontrada'}), 404

        try:
            regra = RegraCobranca.from_row(row)
        except (TypeError, ValueError) as e:
            return jsonify({'error': str(e)}), 422

        clientes = [Cliente.from_row(r) for r in db_atual.listar_clientes_cobranca(regra.user_id)]
        selecionados = gerar_preview(regra, clientes, relogio.hoje())
        template_manager = TemplateManager()

        return jsonify({
            'regra_id': regra.id,
            'filtros': descrever_filtros(regra),
            'avisos_modelo': template_manager.validar_template(regra.modelo_mensagem),
            'total': len(selecionados),
            'clientes': [
                {
                    'id': cliente.id,
                    'nome': cliente.nome,
                    'vencimento': formatar_data_br(cliente.vencimento),
                    'status': status.key,
                    'status_label': status.label,
                    'mensagem': template_manager.processar_template(regra.modelo_mensagem, cliente),
                }
                for cliente, status in selecionados
            ],
        }), 200

    @app.route('/regras/<int:regra_id>/logs', methods=['GET'])
    def logs_regra(regra_id):
        """Últimas execuções da regra"""
        limite = request.args.get('limit', default=20, type=int)
        logs = obter_db().listar_logs_execucao(regra_id, limit=limite)
        for log in logs:
            log['status_label'] = STATUS_EXECUCAO.get(log.get('status'), log.get('status'))
            if isinstance(log.get('executado_em'), datetime):
                log['executado_em_br'] = formatar_datetime_br(log['executado_em'])
                log['executado_em'] = log['executado_em'].astimezone(relogio.tz).isoformat()
        return jsonify({'regra_id': regra_id, 'logs': logs}), 200

    return app


def iniciar_agendador(app, config):
    """Liga o agendador interno quando SCHEDULER_ENABLED=true"""
    if not config.cobranca.scheduler_enabled:
        return None
    from scheduler import CobrancaScheduler
    try:
        motor = app.config['obter_motor']()
    except ErroConfiguracao as e:
        logger.error(f"Agendador interno não iniciado: {e}")
        return None
    agendador = CobrancaScheduler(motor, timezone=config.system.timezone)
    agendador.start()
    return agendador


def main():
    config = get_config()
    config.configure_logging()
    config.log_resumo()

    app = create_app(config=config)
    iniciar_agendador(app, config)

    port = int(os.getenv('PORT', 5000))
    host = os.getenv('HOST', '0.0.0.0')
    logger.info(f"Iniciando servidor Flask em {host}:{port}")
    app.run(host=host, port=port, debug=False, threaded=True)


if __name__ == '__main__':
    main()
