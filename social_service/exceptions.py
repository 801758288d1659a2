"""
Domain-level exceptions for relationships, feeds and photo engagement
"""


class SocialError(Exception):
    """Base class for social service errors"""

    status_code: int = 400
    code: str = "social_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidTargetError(SocialError):
    """Self-referential or malformed target"""

    status_code = 400
    code = "invalid_target"


class UnauthorizedError(SocialError):
    """Caller lacks the relationship to the target entity"""

    status_code = 403
    code = "unauthorized"


class NotFoundError(SocialError):
    """Edge, share or activity does not exist"""

    status_code = 404
    code = "not_found"


class ConflictError(SocialError):
    """Existing state violates the operation's precondition"""

    status_code = 409
    code = "conflict"


class DanglingReferenceError(Exception):
    """
    An activity or share references a trip/destination that no longer exists.

    Raised only inside the enrichment pass and always handled there, so it
    carries no HTTP status.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
