"""
Custom exceptions for the leaderboard pipeline with user-friendly error messages.
"""

class LeaderboardException(Exception):
    """Base exception for leaderboard-related errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

class InvalidCompetitionError(LeaderboardException):
    """Raised when a competition configuration cannot be computed."""
    def __init__(self, competition_id: str, reason: str):
        super().__init__(
            f"Invalid competition '{competition_id}': {reason}",
            f"❌ This competition is misconfigured: {reason}"
        )
        self.reason = reason

class MalformedEventError(LeaderboardException):
    """Raised when a workout event field cannot be parsed."""
    def __init__(self, event_id: str, field: str, details: str = None):
        super().__init__(
            f"Malformed event {event_id}: field '{field}' {details or 'is invalid'}",
            "❌ Workout record could not be read."
        )
        self.field = field

class RelayConnectionError(LeaderboardException):
    """Raised when a relay cannot be reached or drops the connection."""
    def __init__(self, relay_url: str, details: str = None):
        super().__init__(
            f"Relay {relay_url} unavailable: {details}",
            "❌ Could not reach the workout network. Please try again later."
        )
        self.relay_url = relay_url

class CacheError(LeaderboardException):
    """Raised when cache operations fail."""
    def __init__(self, operation: str, details: str = None):
        super().__init__(
            f"Cache error during {operation}: {details}",
            "❌ Cache unavailable."
        )
