from fastapi import Request, status
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)

class GenStudioException(Exception):
    """Base exception for GenStudio application"""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

class ValidationError(GenStudioException):
    """Raised when generation input fails validation"""
    def __init__(self, message: str = "Validation error"):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)

class StoreUnavailableError(GenStudioException):
    """Raised when the job status store cannot be reached"""
    def __init__(self, message: str = "Status store unavailable. Please try again."):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)

class SchedulerUnavailableError(GenStudioException):
    """Raised when a background job cannot be scheduled"""
    def __init__(self, message: str = "Generation queue unavailable. Please try again."):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)

class VendorError(GenStudioException):
    """Raised when a generation vendor reports a failure"""
    def __init__(self, message: str = "The generation service reported an error."):
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)

class VendorConfigurationError(VendorError):
    """Raised when a vendor is used without its credentials"""
    def __init__(self, message: str = "Server configuration error: Missing API key."):
        super().__init__(message)

class VendorTransportError(VendorError):
    """Raised on a transient network failure talking to a vendor"""
    def __init__(self, message: str = "Could not reach the generation service."):
        super().__init__(message)

class VendorTimeoutError(VendorError):
    """Raised when a vendor job exceeds its polling budget"""
    def __init__(self, message: str = "Generation timed out after maximum polling attempts."):
        super().__init__(message)

class PollingTimeoutError(GenStudioException):
    """Raised by the caller-side poller when it gives up waiting"""
    def __init__(self, message: str = "Gave up waiting for the generation to finish."):
        super().__init__(message, status.HTTP_504_GATEWAY_TIMEOUT)

async def genstudio_exception_handler(request: Request, exc: GenStudioException):
    """Handle custom GenStudio exceptions"""
    logger.error(f"GenStudio exception: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message}
    )

async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unexpected error: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )
