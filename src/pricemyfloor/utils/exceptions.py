"""
Custom exception classes
"""
from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Exception raised for missing or malformed input"""
    def __init__(self, detail: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(HTTPException):
    """Exception raised when a lead, retailer or other record does not exist"""
    def __init__(self, detail: str, status_code: int = status.HTTP_404_NOT_FOUND):
        super().__init__(status_code=status_code, detail=detail)


class InvalidStateError(HTTPException):
    """Exception raised when an operation is not legal in the record's current state"""
    def __init__(self, detail: str, status_code: int = status.HTTP_409_CONFLICT):
        super().__init__(status_code=status_code, detail=detail)


class VerificationExpiredError(HTTPException):
    """Exception raised when a verification attempt arrives after the code expired"""
    def __init__(
        self,
        detail: str = "Verification code has expired",
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        super().__init__(status_code=status_code, detail=detail)


class RateLimitError(HTTPException):
    """Exception raised when a client submits too many leads in the window"""
    def __init__(
        self,
        detail: str = "Too many submissions. Please wait before submitting again.",
        status_code: int = status.HTTP_429_TOO_MANY_REQUESTS,
    ):
        super().__init__(status_code=status_code, detail=detail)


class ExternalServiceError(HTTPException):
    """Exception raised when Stripe, Resend or Twilio calls fail"""
    def __init__(self, detail: str, status_code: int = status.HTTP_502_BAD_GATEWAY):
        super().__init__(status_code=status_code, detail=detail)


class DatabaseError(HTTPException):
    """Exception raised for database errors"""
    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)
