import asyncio
from datetime import datetime
import json
import logging
from typing import Any, Optional
import aio_pika
from aio_pika import DeliveryMode, ExchangeType, Message
from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractRobustConnection

logger = logging.getLogger("tracker.events")

TASK_CREATED = "task.created"
SUBMISSION_SUBMITTED = "submission.submitted"
MARKS_SAVED = "marks.saved"


def _default(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _is_open(resource) -> bool:
    return resource is not None and not resource.is_closed


class EventPublisher:
    """
    Pubblica gli eventi di dominio su un exchange DIRECT durable.

    Routing key: ``task.created``, ``submission.submitted``, ``marks.saved``.
    I messaggi sono JSON persistenti; un errore di pubblicazione viene loggato
    e non interrompe la richiesta che l'ha generato.
    """

    def __init__(
        self,
        rabbitmq_url: str,
        *,
        exchange_name: str = "tracker.events",
        heartbeat: int = 30,
        durable: bool = True,
    ) -> None:
        self.rabbitmq_url = rabbitmq_url
        self.exchange_name = exchange_name
        self.heartbeat = heartbeat
        self.durable = durable

        self._conn: Optional[AbstractRobustConnection] = None
        self._channel: Optional[AbstractChannel] = None
        self._exchange: Optional[AbstractExchange] = None
        self._lock = asyncio.Lock()

    async def _open(self, max_retries: int, delay: float) -> None:
        for attempt in range(1, max_retries + 1):
            try:
                if not _is_open(self._conn):
                    self._conn = await aio_pika.connect_robust(self.rabbitmq_url, heartbeat=self.heartbeat)
                    self._channel = None
                if not _is_open(self._channel):
                    self._channel = await self._conn.channel(publisher_confirms=True)
                    self._exchange = None
                if self._exchange is None:
                    self._exchange = await self._channel.declare_exchange(
                        self.exchange_name, ExchangeType.DIRECT, durable=self.durable
                    )
                return
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Broker not reachable (attempt %s/%s): %s", attempt, max_retries, exc)
                if attempt == max_retries:
                    raise
                await asyncio.sleep(delay)

    async def connect(self, max_retries: int = 5, delay: float = 3) -> None:
        """Connessione, canale ed exchange; riprova con pausa fissa."""
        async with self._lock:
            await self._open(max_retries, delay)
        logger.info("Connected to broker", extra={"exchange": self.exchange_name})

    def is_ready(self) -> bool:
        return _is_open(self._conn) and _is_open(self._channel) and self._exchange is not None

    async def close(self) -> None:
        async with self._lock:
            channel, conn = self._channel, self._conn
            self._conn = self._channel = self._exchange = None
            try:
                if _is_open(channel):
                    await channel.close()
            finally:
                if _is_open(conn):
                    await conn.close()

    async def start(self) -> None:
        await self.connect()

    async def stop(self) -> None:
        await self.close()
        logger.info("Event publisher closed")

    async def publish(self, routing_key: str, payload: dict) -> None:
        message = Message(
            body=json.dumps(payload, default=_default).encode("utf-8"),
            content_type="application/json",
            delivery_mode=DeliveryMode.PERSISTENT,
        )
        try:
            if not self.is_ready():
                # un solo tentativo: la richiesta HTTP non resta appesa al backoff
                async with self._lock:
                    await self._open(max_retries=1, delay=0)
            await self._exchange.publish(message, routing_key=routing_key)
            logger.debug("Event published", extra={"routing_key": routing_key})
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Event publish failed", extra={"routing_key": routing_key})


class NullEventPublisher(EventPublisher):
    """Usato quando RABBITMQ_URL non è configurato: gli eventi vengono scartati."""

    def __init__(self) -> None:
        super().__init__("")

    async def start(self) -> None:
        logger.info("Events disabled: RABBITMQ_URL not set")

    async def stop(self) -> None:
        return None

    async def publish(self, routing_key: str, payload: dict) -> None:
        logger.debug("Event dropped", extra={"routing_key": routing_key})
