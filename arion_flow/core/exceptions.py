"""
Error taxonomy. Each class is an HTTPException carrying the status code for its
failure kind, so services can raise them and routes can let them propagate.
"""

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    def __init__(self, detail: str = "Invalid request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class PermissionDenied(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Conflict", code: str = None):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)
        self.code = code


class UpstreamError(HTTPException):
    def __init__(self, detail: str = "Upstream request failed"):
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)
