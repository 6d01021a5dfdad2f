"""Error taxonomy shared by the services, the worker and the HTTP layer.

Every error carries a ``kind`` (the taxonomy bucket reported to clients) and
the HTTP status the API answers with. Services raise these; ``app.main``
renders them as ``{"error": message, "kind": kind}``.
"""


class FilesManagerError(Exception):
    """Base class for all errors raised by the core."""

    kind = "internal"
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthorized(FilesManagerError):
    kind = "unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class NotFound(FilesManagerError):
    """Missing resource, or one the caller is not allowed to see."""

    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class InvalidInput(FilesManagerError):
    kind = "invalid_input"
    status_code = 400
    default_message = "Invalid input"


class MissingField(InvalidInput):
    default_message = "Missing field"


class InvalidKind(InvalidInput):
    default_message = "Missing type"


class InvalidParent(InvalidInput):
    default_message = "Parent not found"


class NotAFolder(InvalidInput):
    default_message = "Parent is not a folder"


class InvalidSize(InvalidInput):
    default_message = "Invalid size parameter"


class NoContent(InvalidInput):
    default_message = "A folder doesn't have content"


class Conflict(FilesManagerError):
    kind = "conflict"
    status_code = 400
    default_message = "Already exist"


class StorageFailure(FilesManagerError):
    kind = "storage_failure"
    status_code = 500


class StoreUnavailable(StorageFailure):
    """The key-value cache could not be reached."""

    status_code = 503
    default_message = "Session store unavailable"


class StorageWriteFailed(StorageFailure):
    default_message = "Internal Server Error"


class JobFailure(FilesManagerError):
    """Terminal error for one queued job; the queue decides about redelivery."""

    kind = "job_failure"
    default_message = "Job failed"
