class ServiceError(Exception):
    pass


class NotFoundError(ServiceError):
    pass


class ForbiddenError(ServiceError):
    pass


class ConflictError(ServiceError):
    pass


class InvalidStateError(ServiceError):
    pass


class InvalidRecurrenceError(ServiceError):
    pass


__all__ = [
    "ServiceError",
    "NotFoundError",
    "ForbiddenError",
    "ConflictError",
    "InvalidStateError",
    "InvalidRecurrenceError",
]
