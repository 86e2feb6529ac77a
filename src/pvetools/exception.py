class ApiError(Exception):
    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f'{status_code} {reason}')
        self.status_code = status_code
        self.reason = reason


class ResourceDoesNotExistError(ApiError):
    pass


class TaskFailedError(ApiError):
    pass


class MalformedIdentityError(ValueError):
    pass


class UpdateNotSupportedError(Exception):
    pass
