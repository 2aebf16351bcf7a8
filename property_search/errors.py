from typing import Optional

class AppError(Exception):
    status_code: int = 400
    code: str = "APP_ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.message = message

class InvalidFilterError(AppError):
    code = "INVALID_FILTER"
    status_code = 400

class NotFoundError(AppError):
    code = "NOT_FOUND"
    status_code = 404

class QueryExecutionError(AppError):
    """The listing store failed or rejected a query. Never retried here."""
    code = "QUERY_ERROR"
    status_code = 500