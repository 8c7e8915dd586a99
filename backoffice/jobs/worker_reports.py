"""Report worker: consumes report jobs and renders them to xlsx files.

Runs as its own process (``backoffice-report-worker`` or
``python -m backoffice.jobs.worker_reports``). Messages are consumed with
``no_ack=True``: the broker forgets a job as soon as it is delivered, so a
crash mid-render loses that job (at-most-once). Failures are only logged;
the requester finds out by polling and getting 404.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

from kombu import Connection, Consumer
from kombu.mixins import ConsumerMixin
from pydantic import ValidationError
from sqlalchemy.orm import Session

from backoffice.config import BROKER_SETTINGS, LOG_SETTINGS
from backoffice.database import Base, SessionLocal, engine
from backoffice.jobs.broker import report_exchange, report_queues
from backoffice.jobs.report_job import ReportJobMessage, ReportKind
from backoffice.repositories.reports import ReportRepository
from backoffice.services.report_renderer import ReportRenderer
from backoffice.utils import get_logger, log_business_event, log_performance, setup_logging
from backoffice.utils.time import utc_now

logger = get_logger(__name__)


class ReportWorker(ConsumerMixin):
    def __init__(
        self,
        connection: Connection,
        *,
        session_factory: Callable[[], Session] = SessionLocal,
        renderer: Optional[ReportRenderer] = None,
        exchange_name: Optional[str] = None,
    ) -> None:
        self.connection = connection
        self.session_factory = session_factory
        self.renderer = renderer or ReportRenderer()
        self.queues = report_queues(report_exchange(exchange_name))

    def get_consumers(self, Consumer: Callable[..., Consumer], channel: Any) -> list[Consumer]:
        consumers = []
        for kind, queue in self.queues.items():
            consumers.append(
                Consumer(
                    queues=[queue],
                    accept=["json"],
                    no_ack=True,
                    callbacks=[self._callback_for(kind)],
                )
            )
        return consumers

    def _callback_for(self, kind: ReportKind) -> Callable[[Any, Any], None]:
        def on_message(body: Any, message: Any) -> None:
            self.handle_payload(kind, body)
        return on_message

    def on_decode_error(self, message: Any, exc: Exception) -> None:
        logger.error(
            "Discarding undecodable report job",
            content_type=getattr(message, "content_type", None),
            error=str(exc),
        )

    def on_connection_error(self, exc: Exception, interval: float) -> None:
        logger.warning("Broker connection lost, retrying", error=str(exc), retry_in=interval)

    def stop(self) -> None:
        self.should_stop = True
        logger.info("Report worker stop requested")

    def handle_payload(self, kind: ReportKind, body: Any) -> Optional[Path]:
        """Validate and render one job. Returns the written path, or None on failure."""
        if not isinstance(body, dict):
            logger.error("Malformed report job", queue_kind=kind.value, body_type=type(body).__name__)
            return None
        try:
            job = ReportJobMessage.from_payload({**body, "kind": kind.value})
        except ValidationError as e:
            logger.error("Malformed report job", queue_kind=kind.value, error=str(e))
            return None
        return self.process(job)

    def process(self, job: ReportJobMessage) -> Optional[Path]:
        logger.info("Processing report job", kind=job.kind.value, correlation_id=job.correlation_id)
        started = utc_now()
        session = self.session_factory()
        try:
            path = self._render(session, job)
        except Exception as e:
            logger.error(
                "Report job failed",
                kind=job.kind.value,
                correlation_id=job.correlation_id,
                error=str(e),
                exc_info=True,
            )
            return None
        finally:
            session.close()

        if path is None:
            logger.error(
                "Report job has nothing to render",
                kind=job.kind.value,
                correlation_id=job.correlation_id,
                identifiers=list(job.identifiers()),
            )
            return None

        log_performance(
            f"render_{job.kind.value}_report",
            (utc_now() - started).total_seconds() * 1000,
            {"correlation_id": job.correlation_id},
        )
        log_business_event(
            "report_rendered",
            {"kind": job.kind.value, "correlation_id": job.correlation_id, "file": path.name},
        )
        return path

    def _render(self, session: Session, job: ReportJobMessage) -> Optional[Path]:
        reports = ReportRepository(session)
        if job.kind is ReportKind.PRICE_HISTORY:
            price_report = reports.get_price_history_report(
                job.commodity_id, job.city_id, job.start_date, job.end_date  # type: ignore[arg-type]
            )
            if price_report is None:
                return None
            return self.renderer.render_price_history(job, price_report)

        harvest_report = reports.get_harvest_report(job.land_commodity_id, job.start_date, job.end_date)  # type: ignore[arg-type]
        if harvest_report is None:
            return None
        return self.renderer.render_harvest(job, harvest_report)


def main() -> None:
    setup_logging(role="report-worker", log_file=str(LOG_SETTINGS["worker_log_file"]))
    Base.metadata.create_all(bind=engine)

    url = str(BROKER_SETTINGS["url"])
    with Connection(url, connect_timeout=float(BROKER_SETTINGS["connect_timeout"])) as connection:  # type: ignore[arg-type]
        worker = ReportWorker(connection)
        logger.info("Report worker started", queues=[q.name for q in worker.queues.values()])
        try:
            worker.run()
        except KeyboardInterrupt:
            logger.info("Report worker interrupted")
    logger.info("Report worker stopped")


__all__ = ["ReportWorker", "main"]


if __name__ == "__main__":
    main()
