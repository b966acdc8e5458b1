"""SQS implementation of the JobSource interface."""

import logging

from botocore.exceptions import BotoCoreError, ClientError

from transcode_worker.config import SqsConfig
from transcode_worker.domain.models import QueueMessage
from transcode_worker.exceptions import AckError

from .interfaces import JobSource

logger = logging.getLogger(__name__)


class SqsJobSource(JobSource):
    """Receives and deletes transcode jobs on an SQS queue."""

    def __init__(self, client, config: SqsConfig):
        self._client = client
        self._config = config

    def receive_next(self) -> list[QueueMessage]:
        params = {
            "QueueUrl": self._config.queue_url,
            "AttributeNames": ["All"],
            "MaxNumberOfMessages": 1,
            "WaitTimeSeconds": self._config.wait_time_seconds,
        }
        if self._config.visibility_timeout is not None:
            params["VisibilityTimeout"] = self._config.visibility_timeout

        try:
            response = self._client.receive_message(**params)
        except (BotoCoreError, ClientError):
            logger.exception(
                "SQS receive failed", extra={"queue_url": self._config.queue_url}
            )
            return []

        messages = [
            QueueMessage(
                receipt_handle=raw["ReceiptHandle"],
                body=raw.get("Body", ""),
                message_id=raw.get("MessageId"),
                attributes=raw.get("Attributes", {}),
            )
            for raw in response.get("Messages", [])
        ]
        if messages:
            logger.info(
                "Message received from SQS",
                extra={"message_id": messages[0].message_id},
            )
        return messages

    def acknowledge(self, message: QueueMessage) -> None:
        try:
            self._client.delete_message(
                QueueUrl=self._config.queue_url,
                ReceiptHandle=message.receipt_handle,
            )
        except (BotoCoreError, ClientError) as e:
            logger.exception(
                "SQS delete failed", extra={"message_id": message.message_id}
            )
            raise AckError(message.receipt_handle, e) from e
        logger.info(
            "Message deleted from SQS", extra={"message_id": message.message_id}
        )

    def release(self, message: QueueMessage) -> None:
        # The message becomes visible again once its visibility timeout lapses.
        logger.info(
            "Message left on SQS for redelivery",
            extra={"message_id": message.message_id},
        )
