"""
Service error taxonomy.

Every failure the post and category services report to a caller is one of these.
The HTTP layer maps ``status_code`` to the response status, so NotFound and
Forbidden stay distinguishable for clients.
"""
from typing import Optional

# Upper bound of the integer id columns (SERIAL is int4 on PostgreSQL)
MAX_ID = 2 ** 31 - 1


class ServiceError(Exception):
    status_code = 500
    error = 'INTERNAL_ERROR'

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error:
            self.error = error

    def to_dict(self) -> dict:
        return {
            'statusCode': self.status_code,
            'error': self.error,
            'message': self.message,
        }


class Unauthorized(ServiceError):
    """Missing, malformed, expired or otherwise invalid credential."""
    status_code = 401
    error = 'AUTH_FAILED'


class Forbidden(ServiceError):
    """Authenticated, but lacking the role or ownership the operation needs."""
    status_code = 403
    error = 'FORBIDDEN'


class NotFound(ServiceError):
    status_code = 404
    error = 'NOT_FOUND'


class InvalidArgument(ServiceError):
    status_code = 400
    error = 'INVALID_ARGUMENT'


class Conflict(ServiceError):
    status_code = 409
    error = 'CONFLICT'


def coerce_id(raw) -> Optional[int]:
    """Return the integer id for a well-formed identifier, None otherwise."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        value = raw
    elif isinstance(raw, str) and raw.strip().isascii() and raw.strip().isdigit():
        value = int(raw.strip())
    else:
        return None
    return value if 1 <= value <= MAX_ID else None


def parse_id(raw, kind: str = 'Post') -> int:
    """Parse a path identifier, treating anything malformed as a missing record."""
    value = coerce_id(raw)
    if value is None:
        raise NotFound(f"Invalid {kind.lower()} ID: {raw}")
    return value
