from .error_handler import ErrorHandlerMiddleware, get_error_response
from .request_id import RequestIdMiddleware

__all__ = ["ErrorHandlerMiddleware", "RequestIdMiddleware", "get_error_response"]
