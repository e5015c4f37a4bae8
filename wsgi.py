"""
Entrada WSGI para o Gunicorn (wsgi:app)
"""

from app import create_app, iniciar_agendador
from config import get_config

config = get_config()
config.configure_logging()
config.log_resumo()

app = create_app(config=config)
iniciar_agendador(app, config)
