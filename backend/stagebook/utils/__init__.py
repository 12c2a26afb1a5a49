from .errors import error_response

__all__ = ["error_response"]
