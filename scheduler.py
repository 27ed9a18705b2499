import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from config import Settings, get_settings
from ledger import ActualHttpLedger, LedgerService, ledger_session
from models import ReconciliationSummary
from services import ReconciliationService, format_cents, to_cents


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

LedgerFactory = Callable[[Settings], LedgerService]


class SchedulerManager:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        ledger_factory: LedgerFactory = ActualHttpLedger,
    ) -> None:
        self._settings = settings
        self.ledger_factory = ledger_factory
        self.scheduler: Optional[BackgroundScheduler] = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def run_job(self, source: str = "manual") -> Optional[ReconciliationSummary]:
        logger.info(f"scheduler_run: source={source}")
        settings = self.settings
        try:
            with ledger_session(self.ledger_factory(settings)) as ledger:
                if settings.bank_sync:
                    ledger.run_bank_sync()
                summary = ReconciliationService(ledger, settings).reconcile()
        except Exception:
            logger.exception(f"scheduler_run: source={source} failed")
            return None
        logger.info(f"scheduler_run: source={source} finished")
        return summary

    def build_trigger(self) -> CronTrigger:
        hour, minute = self.settings.recon_hour_minute
        return CronTrigger(hour=hour, minute=minute, timezone=self.settings.timezone)

    def start(self) -> None:
        settings = self.settings
        hour, minute = settings.recon_hour_minute
        logger.info(
            f"scheduler_config: cron='{minute} {hour} * * *' timezone={settings.timezone} "
            f"start_day={settings.recon_start_day} end_day={settings.recon_end_day} "
            f"target={format_cents(to_cents(settings.monthly_target))} "
            f"dry_run={settings.dry_run} bank_sync={settings.bank_sync}"
        )

        self.run_job("startup")

        self.scheduler = BackgroundScheduler(timezone=settings.timezone)
        self.scheduler.add_job(
            self.run_job,
            self.build_trigger(),
            args=[f"daily_{settings.recon_time}"],
            id="reconcile_daily",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )
        self.scheduler.start()
        logger.info(f"Scheduler started with daily {settings.recon_time} reconciliation")

    def stop(self) -> None:
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
