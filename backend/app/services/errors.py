"""
Service error taxonomy.

Services raise these; routers translate them into HTTP responses
(see app.utils.api.to_http_exception).
"""


class DrawError(Exception):
    """Base class for tournament structuring failures"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PreconditionFailed(DrawError):
    """Policy refusal: e.g. draw requested before groups exist"""

    status_code = 400


class CapacityExceeded(DrawError):
    """Bracket (or group capacity) is full"""

    status_code = 400


class NotFound(DrawError):
    """Referenced tournament/team/match/event is missing"""

    status_code = 404


class ConstraintViolation(DrawError):
    """Uniqueness breach or stale optimistic-concurrency write"""

    status_code = 409


class StoreError(DrawError):
    """Opaque underlying storage failure"""

    status_code = 500
