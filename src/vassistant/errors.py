class ApiError(Exception):
    """Base for failures that map onto an HTTP error response."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class RoutingMiss(ApiError):
    status_code = 404

    def __init__(self, method: str, path: str):
        super().__init__("Not Found")
        self.method = method
        self.path = path


class ValidationError(ApiError):
    status_code = 400


class AuthorizationError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class StoreFailure(ApiError):
    """A store adapter call failed; work already committed is not rolled back."""

    status_code = 500

    def __init__(self, operation: str, table: str, code: str = None):
        super().__init__("Internal server error")
        self.operation = operation
        self.table = table
        self.code = code
