from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class TripTrackError(Exception):
    """Base class for errors shown to the user as an alert."""


class FormError(TripTrackError):
    """Invalid input, caught before any write."""


class NotFound(TripTrackError):
    pass


class PermissionDenied(TripTrackError):
    """The row is outside the acting admin's scope."""


class ConcurrentUpdate(TripTrackError):
    pass


class StorageError(TripTrackError):
    pass


def describe_error(exc: Exception) -> str:
    """Alert text for an error raised by a store or storage call."""
    if isinstance(exc, IntegrityError):
        detail = str(exc.orig) if exc.orig is not None else str(exc)
        lowered = detail.lower()
        if "unique" in lowered or "duplicate" in lowered:
            return "This record already exists."
        if "foreign key" in lowered:
            return "This record is still referenced by other data and cannot be changed."
        return detail
    if isinstance(exc, PermissionDenied):
        return f"Permission denied: {exc}" if str(exc) else "Permission denied."
    if isinstance(exc, SQLAlchemyError):
        return str(getattr(exc, "orig", None) or exc)
    return str(exc) or "Unknown error"
