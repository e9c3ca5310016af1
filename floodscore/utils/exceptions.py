"""
Custom exceptions for the scoring engine with user-friendly error messages.
"""


class FloodScoreException(Exception):
    """Base exception for scoring and leaderboard errors."""
    retryable = False

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


class AuthenticationRequiredError(FloodScoreException):
    """Raised when a write is attempted without an authenticated caller."""
    def __init__(self):
        super().__init__(
            "Caller is not authenticated",
            "❌ You must be signed in to record a puzzle attempt!"
        )


class IdentityMismatchError(FloodScoreException):
    """Raised when a payload names a different user than the caller."""
    def __init__(self, caller_id: str, payload_user_id: str):
        super().__init__(
            f"Caller {caller_id} attempted to write for user {payload_user_id}",
            "❌ You can only record attempts for yourself!"
        )


class PermissionDeniedError(FloodScoreException):
    """Raised when a non-admin invokes an admin operation."""
    def __init__(self, operation: str):
        super().__init__(
            f"Permission denied for {operation}",
            "❌ You don't have permission to do that!"
        )


class InvalidAttemptError(FloodScoreException):
    """Raised when an attempt payload fails validation."""
    def __init__(self, reason: str):
        super().__init__(
            f"Invalid attempt: {reason}",
            f"❌ {reason}"
        )


class PuzzleNotFoundError(FloodScoreException):
    """Raised when no par is registered for a puzzle and difficulty."""
    def __init__(self, puzzle_id: str, difficulty: str):
        super().__init__(
            f"No par registered for puzzle {puzzle_id} ({difficulty})",
            f"❌ Puzzle {puzzle_id} ({difficulty}) is not available!"
        )


class InvalidLeaderboardQueryError(FloodScoreException):
    """Raised when a leaderboard category/subcategory/difficulty combination is invalid."""
    def __init__(self, reason: str):
        super().__init__(
            f"Invalid leaderboard query: {reason}",
            f"❌ {reason}"
        )


class DatabaseError(FloodScoreException):
    """Raised when database operations fail."""
    def __init__(self, operation: str, details: str = None):
        super().__init__(
            f"Database error during {operation}: {details}",
            "❌ Database error occurred. Please try again later."
        )


class TransactionError(FloodScoreException):
    """Raised when a transaction keeps conflicting and retries are exhausted."""
    retryable = True

    def __init__(self, operation: str, attempts: int):
        super().__init__(
            f"Transaction failed for {operation} after {attempts} attempts",
            "❌ Failed to save your attempt. Please try again."
        )
        self.operation = operation
        self.attempts = attempts


class TransactionTimeoutError(FloodScoreException):
    """Raised when a transaction exceeds its time box. Nothing was written."""
    retryable = True

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            f"Transaction for {operation} timed out after {timeout:g}s",
            "❌ Saving took too long. Please try again."
        )
        self.operation = operation
        self.timeout = timeout
