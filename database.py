"""
Gerenciador de Banco de Dados PostgreSQL
Tabelas e consultas do motor de cobrança automática
- Compatível com Railway (SSL obrigatório fora de localhost)
- Isolamento por user_id (dono da regra / dos clientes)
"""

import os
import time
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor, Json

from models import CredencialWhatsApp, LogExecucaoRegra, LogMensagem

logger = logging.getLogger(__name__)

def _mask_conn_dict(d):
    # Não vaze senha nos logs
    if not isinstance(d, dict):
        return d
    out = {}
    for k, v in d.items():
        if k.lower() in ("password", "pgpassword"):
            out[k] = "****"
        else:
            out[k] = v
    return out


class DatabaseManager:
    def __init__(self, database_url=None, connection_params=None, inicializar=True):
        """Inicializa conexão com PostgreSQL (compatível Railway/local)"""
        self.database_url = database_url if database_url is not None else os.getenv('DATABASE_URL')

        if connection_params is None:
            host = os.getenv('PGHOST', 'localhost')
            # Se não for localhost, exigimos SSL por padrão (Railway)
            default_sslmode = 'disable' if host in ('localhost', '127.0.0.1') else 'require'
            connection_params = {
                'host': host,
                'database': os.getenv('PGDATABASE', 'cobranca'),
                'user': os.getenv('PGUSER', 'postgres'),
                'password': os.getenv('PGPASSWORD', ''),
                'port': os.getenv('PGPORT', '5432'),
                'sslmode': os.getenv('PGSSLMODE', default_sslmode),
            }
        self.connection_params = connection_params

        logger.info(f"🔧 Configuração do banco (sem senha): {_mask_conn_dict(self.connection_params)}")

        if inicializar:
            self.init_database()

    def get_connection(self):
        """Cria nova conexão com o banco - DATABASE_URL prioritário"""
        if self.database_url:
            try:
                conn = psycopg2.connect(self.database_url)
                conn.autocommit = False
                return conn
            except psycopg2.OperationalError as e:
                logger.warning(f"Falha com DATABASE_URL: {e}")

        try:
            conn = psycopg2.connect(**self.connection_params)
            conn.autocommit = False
            return conn
        except Exception as e:
            logger.error(f"Erro ao conectar com PostgreSQL: {e}")
            logger.error(f"Parâmetros (sem senha): {_mask_conn_dict(self.connection_params)}")
            raise

    # -------------------------
    # Exec helpers
    # -------------------------
    def execute_query(self, query, params=None):
        """Executa uma query de modificação (INSERT, UPDATE, DELETE)"""
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute(query, params)
                    conn.commit()
                    return cursor.rowcount
        except Exception as e:
            logger.error(f"Erro ao executar query: {e}")
            raise

    def fetch_one(self, query, params=None):
        """Executa uma query e retorna um único resultado"""
        try:
            with self.get_connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                    cursor.execute(query, params)
                    result = cursor.fetchone()
                    return dict(result) if result else None
        except Exception as e:
            logger.error(f"Erro ao executar fetch_one: {e}")
            raise

    def fetch_all(self, query, params=None):
        """Executa uma query e retorna todos os resultados"""
        try:
            with self.get_connection() as conn:
                with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                    cursor.execute(query, params)
                    return [dict(result) for result in cursor.fetchall()]
        except Exception as e:
            logger.error(f"Erro ao executar fetch_all: {e}")
            raise

    # -------------------------
    # Inicialização
    # -------------------------
    def init_database(self):
        """Inicializa as tabelas do banco de dados com retry para Railway"""
        max_attempts = 5
        retry_delay = 2

        for attempt in range(max_attempts):
            try:
                logger.info(f"Tentativa {attempt + 1} de conectar ao banco...")
                with self.get_connection() as conn:
                    with conn.cursor() as cursor:
                        self.create_tables(cursor)
                        self.create_indexes(cursor)
                    conn.commit()
                logger.info("Banco de dados inicializado com sucesso!")
                return True

            except psycopg2.OperationalError as e:
                logger.warning(f"Erro de conectividade na tentativa {attempt + 1}: {e}")
                if attempt < max_attempts - 1:
                    time.sleep(retry_delay)
                    retry_delay *= 2  # Backoff exponencial
                else:
                    logger.error("Esgotadas tentativas de conexão com PostgreSQL")
                    raise

        return False

    def create_tables(self, cursor):
        """Cria todas as tabelas necessárias"""

        # Clientes (mantidos pelo CRUD, somente leitura aqui)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS clientes (
                id SERIAL PRIMARY KEY,
                user_id BIGINT NOT NULL,
                nome VARCHAR(255) NOT NULL,
                telefone VARCHAR(30),
                plano VARCHAR(255),
                vencimento DATE NOT NULL,
                valor DECIMAL(10,2) DEFAULT 0,
                suspenso BOOLEAN DEFAULT FALSE,
                servidor VARCHAR(255),
                usuario VARCHAR(255),
                senha VARCHAR(255),
                app VARCHAR(255),
                telas INTEGER,
                data_cadastro TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Instância WhatsApp (uazapi) por revendedor
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS instancias_whatsapp (
                id SERIAL PRIMARY KEY,
                user_id BIGINT UNIQUE NOT NULL,
                instance_key VARCHAR(255),
                api_token VARCHAR(255),
                data_atualizacao TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Regras de cobrança automática
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS regras_cobranca (
                id SERIAL PRIMARY KEY,
                user_id BIGINT NOT NULL,
                nome VARCHAR(255) NOT NULL,
                ativa BOOLEAN DEFAULT TRUE,
                modelo_mensagem TEXT NOT NULL,
                filtro_status JSONB DEFAULT '[]',
                tipo_periodo VARCHAR(20) DEFAULT 'dias',
                valor_periodo INTEGER DEFAULT 0 CHECK (valor_periodo >= 0),
                direcao_periodo VARCHAR(10) DEFAULT 'before',
                atraso_min INTEGER DEFAULT 3 CHECK (atraso_min >= 3),
                atraso_max INTEGER DEFAULT 7,
                hora_envio SMALLINT DEFAULT 9 CHECK (hora_envio BETWEEN 0 AND 23),
                minuto_envio SMALLINT DEFAULT 0 CHECK (minuto_envio BETWEEN 0 AND 59),
                ultima_execucao TIMESTAMPTZ,
                ultima_quantidade INTEGER,
                total_enviado INTEGER DEFAULT 0,
                data_criacao TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                CONSTRAINT ck_regra_atraso CHECK (atraso_min <= atraso_max)
            )
        """)

        # Logs de execução (append-only)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS logs_regras_cobranca (
                id SERIAL PRIMARY KEY,
                regra_id INTEGER NOT NULL REFERENCES regras_cobranca(id) ON DELETE CASCADE,
                user_id BIGINT NOT NULL,
                clientes_encontrados INTEGER DEFAULT 0,
                mensagens_enviadas INTEGER DEFAULT 0,
                mensagens_falhas INTEGER DEFAULT 0,
                erros JSONB DEFAULT '[]',
                status VARCHAR(20) NOT NULL,
                manual BOOLEAN DEFAULT FALSE,
                executado_em TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Reserva atômica: uma execução agendada por regra por dia
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS reservas_execucao (
                id SERIAL PRIMARY KEY,
                regra_id INTEGER NOT NULL REFERENCES regras_cobranca(id) ON DELETE CASCADE,
                user_id BIGINT NOT NULL,
                data_referencia DATE NOT NULL,
                reservado_em TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                CONSTRAINT uq_reserva_regra_dia UNIQUE (regra_id, data_referencia)
            )
        """)

        # Mensagens enviadas com sucesso
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS logs_mensagens (
                id SERIAL PRIMARY KEY,
                user_id BIGINT NOT NULL,
                cliente_id INTEGER REFERENCES clientes(id) ON DELETE SET NULL,
                regra_id INTEGER REFERENCES regras_cobranca(id) ON DELETE SET NULL,
                status_no_envio VARCHAR(20),
                modelo_usado TEXT,
                status_entrega VARCHAR(20) DEFAULT 'sent',
                enviado_em TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
            )
        """)

        logger.info("Tabelas criadas/atualizadas com sucesso!")

    def create_indexes(self, cursor):
        """Cria índices para otimização"""
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_clientes_usuario ON clientes(user_id)",
            "CREATE INDEX IF NOT EXISTS idx_clientes_vencimento ON clientes(vencimento)",
            "CREATE INDEX IF NOT EXISTS idx_regras_horario ON regras_cobranca(ativa, hora_envio, minuto_envio)",
            "CREATE INDEX IF NOT EXISTS idx_logs_regra_data ON logs_regras_cobranca(regra_id, executado_em)",
            "CREATE INDEX IF NOT EXISTS idx_logs_mensagens_usuario ON logs_mensagens(user_id)",
        ]

        for index_sql in indexes:
            cursor.execute(index_sql)

        logger.info("Índices criados/atualizados com sucesso!")

    # -------------------------
    # REGRAS
    # -------------------------
    def listar_regras_agendadas(self, hora: int, minuto: int) -> List[Dict[str, Any]]:
        """Regras ativas configuradas para HH:MM"""
        return self.fetch_all("""
            SELECT * FROM regras_cobranca
            WHERE ativa = TRUE AND hora_envio = %s AND minuto_envio = %s
            ORDER BY id
        """, (hora, minuto))

    def buscar_regra(self, regra_id) -> Optional[Dict[str, Any]]:
        return self.fetch_one("SELECT * FROM regras_cobranca WHERE id = %s", (regra_id,))

    def atualizar_estatisticas_regra(self, regra_id, executado_em: datetime, enviados: int,
                                     ultima_quantidade: Optional[int] = None):
        """Atualiza ultima_execucao e acumula total_enviado (nunca zera)"""
        return self.execute_query("""
            UPDATE regras_cobranca SET
                ultima_execucao = %s,
                ultima_quantidade = COALESCE(%s, ultima_quantidade),
                total_enviado = COALESCE(total_enviado, 0) + %s
            WHERE id = %s
        """, (executado_em, ultima_quantidade, enviados, regra_id))

    # -------------------------
    # CLIENTES / CREDENCIAL (ISOLADO)
    # -------------------------
    def listar_clientes_cobranca(self, user_id) -> List[Dict[str, Any]]:
        """Clientes não suspensos do revendedor"""
        return self.fetch_all("""
            SELECT id, user_id, nome, telefone, plano, vencimento, valor, suspenso,
                   servidor, usuario, senha, app, telas
            FROM clientes
            WHERE user_id = %s AND suspenso = FALSE
            ORDER BY id
        """, (user_id,))

    def obter_credencial(self, user_id) -> Optional[CredencialWhatsApp]:
        row = self.fetch_one("""
            SELECT user_id, instance_key, api_token
            FROM instancias_whatsapp WHERE user_id = %s
        """, (user_id,))
        return CredencialWhatsApp(**row) if row else None

    # -------------------------
    # CONTROLE DIÁRIO
    # -------------------------
    def existe_log_execucao_desde(self, regra_id, desde: datetime) -> bool:
        row = self.fetch_one("""
            SELECT id FROM logs_regras_cobranca
            WHERE regra_id = %s AND executado_em >= %s
            LIMIT 1
        """, (regra_id, desde))
        return row is not None

    def reservar_execucao(self, regra_id, user_id, dia: date, agora: datetime) -> bool:
        """INSERT ... ON CONFLICT DO NOTHING: True só para quem reservou"""
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute("""
                        INSERT INTO reservas_execucao (regra_id, user_id, data_referencia, reservado_em)
                        VALUES (%s, %s, %s, %s)
                        ON CONFLICT (regra_id, data_referencia) DO NOTHING
                        RETURNING id
                    """, (regra_id, user_id, dia, agora))
                    reservado = cursor.fetchone() is not None
                    conn.commit()
                    return reservado
        except Exception as e:
            logger.error(f"Erro ao reservar execução da regra {regra_id}: {e}")
            raise

    # -------------------------
    # LOGS
    # -------------------------
    def inserir_log_execucao(self, log: LogExecucaoRegra):
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute("""
                        INSERT INTO logs_regras_cobranca
                        (regra_id, user_id, clientes_encontrados, mensagens_enviadas, mensagens_falhas,
                         erros, status, manual, executado_em)
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING id
                    """, (log.regra_id, log.user_id, log.clientes_encontrados, log.mensagens_enviadas,
                          log.mensagens_falhas, Json(log.erros), log.status, log.manual, log.executado_em))
                    log_id = cursor.fetchone()[0]
                    conn.commit()
                    return log_id
        except Exception as e:
            logger.error(f"Erro ao registrar execução da regra {log.regra_id}: {e}")
            raise

    def registrar_log_mensagem(self, log: LogMensagem):
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cursor:
                    cursor.execute("""
                        INSERT INTO logs_mensagens
                        (user_id, cliente_id, regra_id, status_no_envio, modelo_usado, status_entrega, enviado_em)
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        RETURNING id
                    """, (log.user_id, log.cliente_id, log.regra_id, log.status_no_envio,
                          log.modelo_usado, log.status_entrega, log.enviado_em))
                    log_id = cursor.fetchone()[0]
                    conn.commit()
                    return log_id
        except Exception as e:
            logger.error(f"Erro ao registrar mensagem enviada: {e}")
            raise

    def listar_logs_execucao(self, regra_id, limit=20) -> List[Dict[str, Any]]:
        return self.fetch_all("""
            SELECT id, regra_id, user_id, clientes_encontrados, mensagens_enviadas,
                   mensagens_falhas, erros, status, manual, executado_em
            FROM logs_regras_cobranca
            WHERE regra_id = %s
            ORDER BY executado_em DESC
            LIMIT %s
        """, (regra_id, limit))
