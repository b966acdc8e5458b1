"""Abstract interface for job queue operations."""

from abc import ABC, abstractmethod

from pydantic import ValidationError

from transcode_worker.domain.models import JobDescriptor, QueueMessage
from transcode_worker.exceptions import MalformedJobError


class JobSource(ABC):
    """Abstract base class for queues that hand out transcode jobs."""

    @abstractmethod
    def receive_next(self) -> list[QueueMessage]:
        """
        Receives at most one pending message.

        Returns:
            A list with zero or one message. Transport errors are logged and
            reported as an empty list.
        """

    def parse(self, message: QueueMessage) -> JobDescriptor:
        """
        Parses a message body of the form ``{"key": "..."}`` into a job.

        Args:
            message: The raw queue message.

        Returns:
            The parsed job.

        Raises:
            MalformedJobError: If the body is not a valid job description.
        """
        try:
            job = JobDescriptor.model_validate_json(message.body)
        except ValidationError as e:
            raise MalformedJobError(message.body, e) from e
        if not job.is_well_formed():
            raise MalformedJobError(message.body)
        return job

    @abstractmethod
    def acknowledge(self, message: QueueMessage) -> None:
        """
        Deletes a message after its job completed.

        Args:
            message: The message to delete.

        Raises:
            AckError: If the delete call fails.
        """

    @abstractmethod
    def release(self, message: QueueMessage) -> None:
        """
        Returns a message whose job failed to the queue's redelivery mechanism.

        Args:
            message: The message to release.
        """
