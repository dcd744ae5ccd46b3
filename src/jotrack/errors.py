from __future__ import annotations


class JoTrackError(Exception):
    status_code = 400


class InvalidRequestError(JoTrackError, ValueError):
    status_code = 400


class NotFoundError(JoTrackError, LookupError):
    status_code = 404


class ConflictError(JoTrackError):
    status_code = 409


class StageLockedError(ConflictError):
    def __init__(self, stage: str, missing: str):
        super().__init__(f"coach stage '{stage}' is locked until '{missing}' is completed")
        self.stage = stage
        self.missing = missing


class AttachmentRejectedError(JoTrackError):
    def __init__(self, message: str, *, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class RateLimitedError(JoTrackError):
    status_code = 429

    def __init__(self, retry_after_sec: int):
        super().__init__(f"AI rate limit reached; retry in {retry_after_sec}s")
        self.retry_after_sec = retry_after_sec


class AIProviderError(JoTrackError):
    status_code = 502
