"""Custom exceptions for the transcode worker."""


class TranscodeWorkerError(Exception):
    """Base class for errors the worker isolates to a single job."""


class MalformedJobError(TranscodeWorkerError):
    """Raised when a queue message body is not a valid job description."""

    def __init__(self, body: str, cause: Exception | None = None):
        self.body = body
        self.cause = cause
        super().__init__(f"Malformed job message body: {body!r}")


class TransferError(TranscodeWorkerError):
    """Raised when a blob store read or write fails."""

    message = "Failed to transfer '{object_name}'"

    def __init__(self, object_name: str, cause: Exception | None = None):
        self.object_name = object_name
        self.cause = cause
        super().__init__(self.message.format(object_name=object_name))


class StorageDownloadError(TransferError):
    """Raised when downloading a file from storage fails."""

    message = "Failed to download '{object_name}' from storage"


class StorageNotFoundError(StorageDownloadError):
    """Raised when the requested object does not exist in storage."""

    message = "Object '{object_name}' not found in storage"


class StorageUploadError(TransferError):
    """Raised when uploading a file to storage fails."""

    message = "Failed to upload '{object_name}' to storage"


class EngineError(TranscodeWorkerError):
    """Raised when the media engine fails to transform a file."""

    def __init__(
        self, file_name: str, detail: str = "", cause: Exception | None = None
    ):
        self.file_name = file_name
        self.detail = detail
        self.cause = cause
        message = f"Media engine failed on '{file_name}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ProbeError(EngineError):
    """Raised when a file cannot be inspected as a media container."""


class AckError(TranscodeWorkerError):
    """Raised when deleting a message from the queue fails."""

    def __init__(self, receipt_handle: str, cause: Exception | None = None):
        self.receipt_handle = receipt_handle
        self.cause = cause
        super().__init__("Failed to acknowledge queue message")


class LifecycleError(TranscodeWorkerError):
    """Raised when the compute host cannot be stopped."""

    def __init__(self, instance_id: str, cause: Exception | None = None):
        self.instance_id = instance_id
        self.cause = cause
        super().__init__(f"Failed to stop instance '{instance_id}'")


class JobFailedError(TranscodeWorkerError):
    """Raised when a job pipeline stops at a stage with unrecovered errors."""

    def __init__(self, key: str, stage: str, errors: list[Exception]):
        self.key = key
        self.stage = stage
        self.errors = errors
        self.cause = errors[0] if errors else None
        details = "; ".join(str(e) for e in errors)
        super().__init__(f"Job '{key}' failed at stage '{stage}': {details}")
