class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when user input is invalid; the flow stays in its input state."""

    code = "validation_error"


class InvalidFormatError(ValidationError):
    code = "invalid_format"


class OutOfRangeError(ValidationError):
    code = "out_of_range"


class DuplicateTimestampError(ValidationError):
    code = "duplicate_timestamp"


class FutureTimeError(ValidationError):
    code = "future_time"


class TooOldError(ValidationError):
    code = "too_old"


class PreconditionError(DomainError):
    """Raised when an operation is not allowed in the current ledger or flow state."""

    code = "precondition_failed"


class NoRecordsToEditError(PreconditionError):
    code = "no_records_to_edit"


class SessionExpiredError(PreconditionError):
    code = "session_expired"


class RecordNotFoundError(PreconditionError):
    code = "record_not_found"


class AlreadyWorkingError(PreconditionError):
    code = "already_working"


class NotWorkingError(PreconditionError):
    code = "not_working"


class InvalidTransitionError(PreconditionError):
    code = "invalid_transition"


class StorageError(Exception):
    """Raised when the backing store fails (transaction conflict, connectivity)."""

    code = "storage_error"
