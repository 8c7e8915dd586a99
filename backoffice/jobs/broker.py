"""AMQP topology and publisher for report jobs (kombu).

Topology::

    report-exchange (direct, durable)
      ├── routing key "price-history" -> price-history-queue
      └── routing key "harvest"       -> harvest-queue

Publishing is synchronous and does not retry: if the broker cannot be reached
the caller gets ``BrokerUnavailableError`` immediately and nothing is queued
locally. Any kombu URL works; tests and broker-less development use
``memory://``.
"""
from __future__ import annotations

from typing import Optional

from kombu import Connection, Exchange, Queue
from kombu.exceptions import KombuError

from backoffice.config import BROKER_SETTINGS
from backoffice.jobs.report_job import ReportJobMessage, ReportKind
from backoffice.utils import get_logger

logger = get_logger(__name__)


class BrokerUnavailableError(Exception):
    pass


def report_exchange(name: Optional[str] = None) -> Exchange:
    return Exchange(name or str(BROKER_SETTINGS["exchange"]), type="direct", durable=True)


def report_queues(exchange: Optional[Exchange] = None) -> dict[ReportKind, Queue]:
    """One queue per report kind, bound with the kind as routing key."""
    exchange = exchange or report_exchange()
    queue_names: dict[str, str] = BROKER_SETTINGS["queues"]  # type: ignore[assignment]
    return {
        kind: Queue(queue_names[kind.value], exchange=exchange, routing_key=kind.value, durable=False)
        for kind in ReportKind
    }


def create_connection(url: Optional[str] = None, *, connect_timeout: Optional[float] = None) -> Connection:
    timeout = float(connect_timeout if connect_timeout is not None else BROKER_SETTINGS["connect_timeout"])  # type: ignore[arg-type]
    return Connection(url or str(BROKER_SETTINGS["url"]), connect_timeout=timeout)


class ReportPublisher:
    """Publishes ``ReportJobMessage`` payloads as JSON.

    A connection is opened per publish; report requests are rare and this
    keeps the publisher safe to share between request threads.
    """

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        exchange_name: Optional[str] = None,
        connect_timeout: Optional[float] = None,
    ) -> None:
        self.url = url or str(BROKER_SETTINGS["url"])
        self.exchange = report_exchange(exchange_name)
        self.queues = report_queues(self.exchange)
        self._connect_timeout = connect_timeout

    def declare_topology(self) -> None:
        """Declare exchange, queues and bindings (idempotent)."""
        try:
            with create_connection(self.url, connect_timeout=self._connect_timeout) as conn:
                conn.ensure_connection(max_retries=0)
                channel = conn.default_channel
                self.exchange(channel).declare()
                for queue in self.queues.values():
                    queue(channel).declare()
        except (KombuError, OSError) as e:
            raise BrokerUnavailableError(f"cannot declare report topology: {e}") from e
        logger.info("Report topology declared", exchange=self.exchange.name, queues=[q.name for q in self.queues.values()])

    def publish(self, job: ReportJobMessage) -> None:
        queue = self.queues[job.kind]
        try:
            with create_connection(self.url, connect_timeout=self._connect_timeout) as conn:
                conn.ensure_connection(max_retries=0)
                producer = conn.Producer(serializer="json")
                producer.publish(
                    job.to_payload(),
                    exchange=self.exchange,
                    routing_key=job.kind.value,
                    declare=[queue],
                    retry=False,
                )
        except (KombuError, OSError) as e:
            logger.error(
                "Report job publish failed",
                kind=job.kind.value,
                correlation_id=job.correlation_id,
                error=str(e),
            )
            raise BrokerUnavailableError(f"cannot publish report job: {e}") from e
        logger.info(
            "Report job published",
            exchange=self.exchange.name,
            routing_key=job.kind.value,
            correlation_id=job.correlation_id,
        )

    def health_check(self) -> bool:
        try:
            with create_connection(self.url, connect_timeout=self._connect_timeout) as conn:
                conn.ensure_connection(max_retries=0)
            return True
        except (KombuError, OSError) as e:
            logger.warning("Broker health check failed", error=str(e))
            return False


__all__ = [
    "BrokerUnavailableError",
    "ReportPublisher",
    "create_connection",
    "report_exchange",
    "report_queues",
]
