"""
Configurações da Cobrança Automática
Lê variáveis de ambiente (e .env) e valida o mínimo para o motor rodar
"""

import os
import sys
import logging
from typing import Dict, Any, List, Optional
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

NIVEIS_LOG = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

# Bibliotecas ruidosas em INFO
LOGGERS_EXTERNOS = ('requests', 'urllib3', 'apscheduler', 'werkzeug')


def _env_bool(nome: str, padrao: str = 'false') -> bool:
    return os.getenv(nome, padrao).strip().lower() in ('1', 'true', 'yes', 'sim')


@dataclass
class DatabaseConfig:
    """PostgreSQL: DATABASE_URL tem prioridade sobre as variáveis PG*"""
    host: str
    port: int
    database: str
    username: str
    password: str
    sslmode: Optional[str] = None
    url: Optional[str] = None

    def connection_params(self) -> Dict[str, Any]:
        """Parâmetros para psycopg2.connect quando não há DATABASE_URL"""
        sslmode = self.sslmode or ('disable' if self.host in ('localhost', '127.0.0.1') else 'require')
        return {
            'host': self.host,
            'port': self.port,
            'database': self.database,
            'user': self.username,
            'password': self.password,
            'sslmode': sslmode,
        }

    def validate(self) -> bool:
        return bool(self.url) or all([self.host, self.database, self.username])


@dataclass
class UazapiConfig:
    """API uazapi (WhatsApp); o token é por revendedor, fica no banco"""
    subdomain: str
    timeout: int = 20

    def validate(self) -> bool:
        return bool(self.subdomain) and self.timeout > 0


@dataclass
class CobrancaConfig:
    """Disparo do motor: cron externo (CRON_TOKEN) ou agendador interno"""
    scheduler_enabled: bool = False
    cron_token: str = ""


@dataclass
class SystemConfig:
    log_level: str = "INFO"
    timezone: str = "America/Sao_Paulo"
    debug_mode: bool = False

    def validate(self) -> bool:
        return self.log_level.upper() in NIVEIS_LOG


class Config:
    """Configuração única do processo (ver get_config)"""

    def __init__(self):
        self._carregar_env()

        self.database = DatabaseConfig(
            host=os.getenv('PGHOST', 'localhost'),
            port=int(os.getenv('PGPORT', '5432')),
            database=os.getenv('PGDATABASE', 'cobranca'),
            username=os.getenv('PGUSER', 'postgres'),
            password=os.getenv('PGPASSWORD', ''),
            sslmode=os.getenv('PGSSLMODE') or None,
            url=os.getenv('DATABASE_URL') or None,
        )

        self.uazapi = UazapiConfig(
            subdomain=os.getenv('UAZAPI_SUBDOMAIN', '').strip(),
            timeout=int(os.getenv('UAZAPI_TIMEOUT', '20')),
        )

        self.cobranca = CobrancaConfig(
            scheduler_enabled=_env_bool('SCHEDULER_ENABLED'),
            cron_token=os.getenv('CRON_TOKEN', ''),
        )

        self.system = SystemConfig(
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            timezone=os.getenv('TIMEZONE', 'America/Sao_Paulo'),
            debug_mode=_env_bool('DEBUG_MODE'),
        )

    def _carregar_env(self):
        """.env do diretório atual, sem sobrescrever o ambiente"""
        env_path = Path('.env')
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(".env carregado")

    def validate_all(self) -> Dict[str, Any]:
        """Erros impedem a cobrança; avisos só aparecem no log"""
        erros: List[str] = []
        avisos: List[str] = []

        if not self.database.validate():
            erros.append("Configurações do banco de dados incompletas")
        if not self.uazapi.validate():
            erros.append("UAZAPI_SUBDOMAIN não configurado")

        if not self.cobranca.cron_token:
            avisos.append("CRON_TOKEN não configurado, endpoint de cron aberto")
        if not self.system.validate():
            avisos.append(f"LOG_LEVEL inválido: {self.system.log_level}")
        if not self.database.url and not self.database.password:
            avisos.append("Senha do PostgreSQL não configurada")

        return {'valid': not erros, 'errors': erros, 'warnings': avisos}

    def is_production(self) -> bool:
        return os.getenv('ENVIRONMENT', 'development').lower() == 'production'

    def is_debug_enabled(self) -> bool:
        return self.system.debug_mode or _env_bool('DEBUG')

    def get_log_level(self) -> int:
        nivel = self.system.log_level.upper()
        return getattr(logging, nivel) if nivel in NIVEIS_LOG else logging.INFO

    def configure_logging(self):
        """basicConfig do processo; em debug inclui arquivo:linha"""
        if self.is_debug_enabled():
            formato = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
            nivel = logging.DEBUG
        else:
            formato = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            nivel = self.get_log_level()

        logging.basicConfig(level=nivel, format=formato, datefmt='%Y-%m-%d %H:%M:%S')

        for nome in LOGGERS_EXTERNOS:
            logging.getLogger(nome).setLevel(logging.WARNING)

        logger.info(f"Logging configurado - Nível: {logging.getLevelName(nivel)}")

    def log_resumo(self):
        """Resumo da configuração no boot, sem segredos"""
        ambiente = 'PRODUÇÃO' if self.is_production() else 'DESENVOLVIMENTO'
        banco = 'DATABASE_URL' if self.database.url else f"{self.database.host}:{self.database.port}/{self.database.database}"
        gatilho = 'agendador interno' if self.cobranca.scheduler_enabled else 'cron externo'

        logger.info(f"💸 Cobrança automática | ambiente={ambiente} | fuso={self.system.timezone}")
        logger.info(f"🗄️ Banco: {banco}")
        logger.info(f"📱 uazapi: {self.uazapi.subdomain or 'não configurado'} (timeout {self.uazapi.timeout}s)")
        logger.info(f"⏰ Disparo: {gatilho}")

        validacao = self.validate_all()
        for erro in validacao['errors']:
            logger.error(f"🔴 {erro}")
        for aviso in validacao['warnings']:
            logger.warning(f"🟡 {aviso}")
        return validacao


# Instância global
config = Config()


def get_config() -> Config:
    return config


if __name__ == "__main__":
    config.configure_logging()
    sys.exit(0 if config.log_resumo()['valid'] else 1)
