"""
Agendador interno (opcional)
Substitui o cron externo quando SCHEDULER_ENABLED=true: chama o motor de
cobrança todo minuto no segundo 0, no fuso de referência.
"""

import logging

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

JOB_ID = 'cobranca_minutal'


class CobrancaScheduler:
    def __init__(self, motor, timezone='America/Sao_Paulo'):
        """Inicializa agendador com o motor de cobrança"""
        self.motor = motor
        self.scheduler = BackgroundScheduler(
            timezone=pytz.timezone(timezone),
            job_defaults={
                'coalesce': True,
                'max_instances': 1,
                'misfire_grace_time': 30,
            }
        )
        self.running = False

    def start(self):
        """Inicia o agendador"""
        if self.running:
            logger.info("Agendador já está em execução")
            return

        self.scheduler.add_job(
            func=self._executar_cobranca,
            trigger=CronTrigger(second=0, timezone=self.scheduler.timezone),
            id=JOB_ID,
            name='Cobrança automática (minutal)',
            replace_existing=True,
        )
        self.scheduler.start()
        self.running = True
        logger.info("✅ Agendador de cobrança iniciado: execução a cada minuto")

    def stop(self):
        """Para o agendador"""
        if self.running:
            self.scheduler.shutdown()
            self.running = False
            logger.info("Agendador parado")

    def is_running(self):
        """Verifica se agendador está rodando"""
        return self.running and self.scheduler.running

    def _executar_cobranca(self):
        """Job minutal; erros ficam no log e o próximo minuto roda normalmente"""
        try:
            resumo = self.motor.executar()
            if resumo.get('success'):
                logger.info(f"Cobrança: {resumo['rules_processed']} regra(s), {resumo['total_sent']} envio(s)")
        except Exception as e:
            logger.error(f"Erro na cobrança automática: {e}", exc_info=True)
