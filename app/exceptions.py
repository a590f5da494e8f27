"""
Domain errors raised by the placement services

Each error carries the HTTP status and error code the routers respond with.
"""


class PlacementError(Exception):
    """Base class for placement test errors"""

    status_code = 400
    error_code = "placement_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSubmission(PlacementError):
    """Missing or non-positive identifiers in a request"""

    status_code = 400
    error_code = "invalid_submission"


class TestNotFound(PlacementError):
    """Test is absent, not published, or not owned by the caller"""

    __test__ = False  # not a pytest test class
    status_code = 404
    error_code = "test_not_found"


class DuplicateSubmission(PlacementError):
    """Student already has a result for this test"""

    status_code = 409
    error_code = "duplicate_submission"


class InvalidStatusTransition(PlacementError):
    """Requested lifecycle move is not allowed"""

    status_code = 409
    error_code = "invalid_status_transition"


class TestLocked(PlacementError):
    """Test can no longer be edited in its current status"""

    __test__ = False
    status_code = 409
    error_code = "test_locked"


class PersistenceFailure(PlacementError):
    """Database write failed; safe to retry"""

    status_code = 503
    error_code = "persistence_failure"
