"""RabbitMQ implementation of the JobSource interface."""

import logging

from pika.adapters.blocking_connection import BlockingChannel
from pika.exceptions import AMQPError

from transcode_worker.config import RabbitMQConfig
from transcode_worker.domain.models import QueueMessage
from transcode_worker.exceptions import AckError

from .interfaces import JobSource

logger = logging.getLogger(__name__)


class RabbitMQJobSource(JobSource):
    """Polls a RabbitMQ quorum queue for transcode jobs."""

    def __init__(self, channel: BlockingChannel, config: RabbitMQConfig):
        self._channel = channel
        self._config = config

    def receive_next(self) -> list[QueueMessage]:
        queue_name = self._config.queue_config.name
        try:
            method, properties, body = self._channel.basic_get(
                queue=queue_name, auto_ack=False
            )
        except AMQPError:
            logger.exception("RabbitMQ receive failed", extra={"queue": queue_name})
            return []

        if method is None:
            return []

        headers = (properties.headers if properties else None) or {}
        message = QueueMessage(
            receipt_handle=str(method.delivery_tag),
            body=body.decode("utf-8", errors="replace"),
            message_id=properties.message_id if properties else None,
            attributes={
                "delivery_count": headers.get("x-delivery-count", 1),
                "max_delivery_count": self._config.queue_config.max_delivery_count,
                "routing_key": method.routing_key,
            },
        )
        logger.info(
            "Message received from RabbitMQ",
            extra={
                "queue": queue_name,
                "attempt": message.attributes["delivery_count"],
            },
        )
        return [message]

    def acknowledge(self, message: QueueMessage) -> None:
        try:
            self._channel.basic_ack(delivery_tag=int(message.receipt_handle))
        except AMQPError as e:
            logger.exception(
                "RabbitMQ ack failed", extra={"delivery_tag": message.receipt_handle}
            )
            raise AckError(message.receipt_handle, e) from e

    def release(self, message: QueueMessage) -> None:
        # Quorum queues count the nack against x-delivery-limit, then dead-letter.
        try:
            self._channel.basic_nack(delivery_tag=int(message.receipt_handle))
        except AMQPError:
            logger.exception(
                "RabbitMQ nack failed", extra={"delivery_tag": message.receipt_handle}
            )

    def setup(self) -> None:
        """
        Declares the job queue and its dead-letter queue.

        Jobs that exhaust the delivery limit are routed to the dead-letter
        queue through the default exchange. The job queue is bound to an
        exchange only when both an exchange name and a binding key are set.
        """
        queue_config = self._config.queue_config
        self._channel.queue_declare(queue=queue_config.dlq_name, durable=True)
        self._channel.queue_declare(
            queue=queue_config.name,
            durable=True,
            arguments={
                # Delivery limits are only enforced on quorum queues.
                "x-queue-type": "quorum",
                "x-delivery-limit": queue_config.max_delivery_count,
                "x-dead-letter-exchange": "",
                "x-dead-letter-routing-key": queue_config.dlq_name,
            },
        )

        exchange, binding_key = self._config.exchange_name, self._config.binding_key
        bound_exchange = exchange if exchange and binding_key else None
        if bound_exchange:
            self._channel.queue_bind(
                queue=queue_config.name, exchange=exchange, routing_key=binding_key
            )

        logger.info(
            "Job queue declared",
            extra={
                "queue": queue_config.name,
                "dead_letter_queue": queue_config.dlq_name,
                "exchange": bound_exchange,
            },
        )
