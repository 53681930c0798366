from pathlib import Path


class VideoBotError(RuntimeError):
    pass


class ResolutionError(VideoBotError):
    pass


class MetadataError(VideoBotError):
    pass


class DownloadError(VideoBotError):
    """Raised when the media binary could not be written to scratch storage.

    ``path`` points at the (possibly partial) file left behind, if any.
    """

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path


class DeliveryError(VideoBotError):
    pass


class CacheError(VideoBotError):
    pass


class RetriesExhaustedError(VideoBotError):
    def __init__(self, message: str, attempts: int):
        super().__init__(message)
        self.attempts = attempts
