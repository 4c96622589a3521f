# errors.py
"""
Error kinds raised by the timeline engine.

Every error carries a machine-readable ``code`` and a message that is safe to
show to a client. The HTTP layer maps the kinds to status codes.
"""

GENERIC_MESSAGE = "An internal error occurred. Please try again later."


class TimelineError(Exception):
    code = "INTERNAL_ERROR"
    default_message = GENERIC_MESSAGE

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}


class InvalidInput(TimelineError):
    """Bad date, timezone, user list or interval. Never retried."""
    code = "VALIDATION_ERROR"
    default_message = "Invalid input"


class UnknownUser(InvalidInput):
    code = "UNKNOWN_USER"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Unknown user: {user_id}")


class IntervalConflict(InvalidInput):
    code = "INTERVAL_OVERLAP"

    def __init__(self, conflicts):
        self.conflicts = list(conflicts)
        super().__init__("Interval overlaps existing intervals: " + ", ".join(map(str, self.conflicts)))


class UpstreamFetchFailure(TimelineError):
    """
    The interval store failed. The original exception is chained for the logs;
    the message stays generic so storage details never reach a client.
    """

    def __init__(self, user_id: str | None = None):
        self.user_id = user_id
        super().__init__(GENERIC_MESSAGE)


class ComputationTimeout(TimelineError):
    code = "TIMELINE_TIMEOUT"
    default_message = "Timeline calculation timeout"


class InvariantViolation(TimelineError):
    """Overlapping ranges reached the read path. Fail instead of rendering them."""
    code = "INVARIANT_VIOLATION"
    default_message = "Overlapping intervals detected"
