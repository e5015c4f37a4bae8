#!/usr/bin/env python3
"""
Ponto de entrada do deploy
Gunicorn quando há PORT/ENVIRONMENT=production, servidor Flask no resto
"""

import os
import sys
import subprocess

from config import get_config


def comando_gunicorn(port: str) -> list:
    # 1 worker: com SCHEDULER_ENABLED o agendador interno não pode duplicar
    return [
        'gunicorn',
        '--bind', f'0.0.0.0:{port}',
        '--workers', '1',
        '--timeout', '600',
        '--access-logfile', '-',
        '--error-logfile', '-',
        'wsgi:app',
    ]


def em_producao() -> bool:
    return os.getenv('PORT') is not None or get_config().is_production()


def main():
    if em_producao():
        port = os.getenv('PORT', '5000')
        print(f"Produção: gunicorn na porta {port}")
        sys.exit(subprocess.run(comando_gunicorn(port)).returncode)

    from app import main as servidor_flask
    print("Desenvolvimento: servidor Flask")
    servidor_flask()


if __name__ == '__main__':
    main()
