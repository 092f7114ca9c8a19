"""Domain errors raised by the mock test services.

Each error carries the HTTP status the API layer answers with.
"""


class MockTestError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class UnauthorizedError(MockTestError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(MockTestError):
    """Caller is authenticated but does not own the resource."""

    status_code = 403

    def __init__(self, message: str = "Unauthorized access to session"):
        super().__init__(message)


class PremiumRequiredError(ForbiddenError):
    """Premium mock test requested by a free-tier user."""

    def __init__(self, mock_test_id: str):
        super().__init__(f"Mock test {mock_test_id} requires premium access")
        self.mock_test_id = mock_test_id


class NotFoundError(MockTestError):
    status_code = 404


class MissingFieldsError(MockTestError):
    status_code = 400

    def __init__(self, fields: list[str]):
        super().__init__(f"Missing required fields: {', '.join(fields)}")
        self.fields = fields


class InvalidScoreError(MockTestError, ValueError):
    """Raw score outside the 0-40 range of an IELTS paper."""

    status_code = 400


class SectionOutOfOrderError(MockTestError):
    status_code = 409

    def __init__(self, submitted: str, current_section: str | None):
        super().__init__(
            f"Section '{submitted}' cannot be submitted now; "
            f"current section is '{current_section}'"
        )
        self.submitted = submitted
        self.current_section = current_section

    def to_dict(self) -> dict:
        return {"error": self.message, "current_section": self.current_section}


class SessionCompletedError(MockTestError):
    status_code = 409

    def __init__(self, session_id: str):
        super().__init__(f"Mock test session {session_id} is already completed")
        self.session_id = session_id


class StaleSessionError(MockTestError):
    """A concurrent write changed the session since it was read."""

    status_code = 409

    def __init__(self, session_id: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Session {session_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.session_id = session_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class StorageError(MockTestError):
    status_code = 500


class EvaluatorUnavailableError(MockTestError):
    status_code = 503

    def __init__(self, message: str = "AI evaluation is not configured"):
        super().__init__(message)


class QualificationError(MockTestError):
    """Caller may not take or submit the qualification exam right now."""

    status_code = 409

    def __init__(self, message: str, next_attempt_at: str | None = None):
        super().__init__(message)
        self.next_attempt_at = next_attempt_at

    def to_dict(self) -> dict:
        data = {"error": self.message}
        if self.next_attempt_at:
            data["next_attempt_at"] = self.next_attempt_at
        return data
