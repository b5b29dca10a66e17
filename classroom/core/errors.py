import enum


class ErrorKind(enum.Enum):
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STORAGE_ERROR = "storage_error"
    DATABASE_ERROR = "database_error"
    DELIVERY_ERROR = "delivery_error"
    TIMEOUT = "timeout"


class ClassroomError(Exception):
    """Base class for every error raised by the classroom workflows.

    The kind decides how the caller reports the failure; the message is
    meant for humans.
    """

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __repr__(self):
        return f"{type(self).__name__}({self.message!r})"


class InvalidInput(ClassroomError):
    kind = ErrorKind.INVALID_INPUT


class Unauthorized(ClassroomError):
    kind = ErrorKind.UNAUTHORIZED


class Forbidden(ClassroomError):
    kind = ErrorKind.FORBIDDEN


class NotFound(ClassroomError):
    kind = ErrorKind.NOT_FOUND


class Conflict(ClassroomError):
    kind = ErrorKind.CONFLICT


class StorageError(ClassroomError):
    kind = ErrorKind.STORAGE_ERROR


class DatabaseError(ClassroomError):
    kind = ErrorKind.DATABASE_ERROR


class DeliveryError(ClassroomError):
    kind = ErrorKind.DELIVERY_ERROR


class Timeout(ClassroomError):
    kind = ErrorKind.TIMEOUT
