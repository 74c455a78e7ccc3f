"""Exception types shared across notelift."""

from __future__ import annotations

from pathlib import Path


class NoteliftError(Exception):
    """Base class for notelift errors."""


class CorpusNotFoundError(NoteliftError):
    """The corpus root is missing or not a directory. Fatal for the run."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = str(directory)
        super().__init__(f"Corpus directory not found or not a directory: {self.directory}")


class FileReadError(NoteliftError):
    """A document could not be read or decoded."""

    def __init__(self, path: str | Path, cause: Exception) -> None:
        self.path = str(path)
        super().__init__(f"read failed for {self.path}: {cause}")
        self.__cause__ = cause


class FileWriteError(NoteliftError):
    """A rewritten document could not be written back."""

    def __init__(self, path: str | Path, cause: Exception) -> None:
        self.path = str(path)
        super().__init__(f"write failed for {self.path}: {cause}")
        self.__cause__ = cause


class StoreError(NoteliftError):
    """Wraps image-store specific exceptions with context."""

    def __init__(
        self, store: str, operation: str, cause: Exception | str, retryable: bool = False
    ) -> None:
        self.store = store
        self.operation = operation
        self.retryable = retryable
        super().__init__(f"{store} {operation} failed: {cause}")
        if isinstance(cause, Exception):
            self.__cause__ = cause


class UploadFailure(NoteliftError):
    """An upload still failed after the retry budget was spent."""

    def __init__(self, fingerprint: str, attempts: int, cause: Exception) -> None:
        self.fingerprint = fingerprint
        self.attempts = attempts
        super().__init__(f"upload failed after {attempts} attempt(s): {cause}")
        self.__cause__ = cause


class UploadAborted(NoteliftError):
    """New uploads are refused once the run's failure threshold is exceeded."""

    def __init__(self, failed: int, finished: int) -> None:
        self.failed = failed
        self.finished = finished
        super().__init__(
            f"upload skipped: run aborted after {failed}/{finished} failed uploads"
        )
