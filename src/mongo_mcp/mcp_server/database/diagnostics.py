"""Connection pool diagnostics.

Optional observer that logs every connection pool event published by the
driver. It is attached to the client only when LOG_POOL_EVENTS is enabled and
has no interaction with tool dispatch.
"""

import logging

from pymongo import monitoring

logger = logging.getLogger(__name__)


class ConnectionDiagnostics(monitoring.ConnectionPoolListener):
    """Log pymongo connection pool events at DEBUG level."""

    def pool_created(self, event: monitoring.PoolCreatedEvent) -> None:
        logger.debug(f"Pool created for {event.address} (options: {event.options})")

    def pool_ready(self, event: monitoring.PoolReadyEvent) -> None:
        logger.debug(f"Pool ready for {event.address}")

    def pool_cleared(self, event: monitoring.PoolClearedEvent) -> None:
        logger.debug(f"Pool cleared for {event.address}")

    def pool_closed(self, event: monitoring.PoolClosedEvent) -> None:
        logger.debug(f"Pool closed for {event.address}")

    def connection_created(self, event: monitoring.ConnectionCreatedEvent) -> None:
        logger.debug(f"Connection {event.connection_id} created to {event.address}")

    def connection_ready(self, event: monitoring.ConnectionReadyEvent) -> None:
        logger.debug(f"Connection {event.connection_id} ready on {event.address}")

    def connection_closed(self, event: monitoring.ConnectionClosedEvent) -> None:
        logger.debug(
            f"Connection {event.connection_id} to {event.address} closed ({event.reason})"
        )

    def connection_check_out_started(
        self, event: monitoring.ConnectionCheckOutStartedEvent
    ) -> None:
        logger.debug(f"Connection check out started on {event.address}")

    def connection_check_out_failed(
        self, event: monitoring.ConnectionCheckOutFailedEvent
    ) -> None:
        logger.debug(f"Connection check out failed on {event.address} ({event.reason})")

    def connection_checked_out(self, event: monitoring.ConnectionCheckedOutEvent) -> None:
        logger.debug(f"Connection {event.connection_id} checked out from {event.address}")

    def connection_checked_in(self, event: monitoring.ConnectionCheckedInEvent) -> None:
        logger.debug(f"Connection {event.connection_id} checked in to {event.address}")
