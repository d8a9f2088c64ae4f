from fastapi import status


class LostFoundError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Server error"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ValidationError(LostFoundError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid request"


class AuthError(LostFoundError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Could not validate credentials"


class AuthorizationError(LostFoundError):
    # Owner checks answer 401 like the rest of the auth surface
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "User not authorized"


class NotFoundError(LostFoundError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class ServerError(LostFoundError):
    pass
