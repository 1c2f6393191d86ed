"""Error taxonomy shared by the crawler, translator, stores and pipeline."""

from typing import Optional


class ReaderError(Exception):
    """Base class for all syosetu-reader errors."""


class FetchError(ReaderError):
    """Content source could not deliver a directory or chapter."""


class ServiceError(ReaderError):
    """Translation service call failed or returned no usable payload."""


class StorageReadDegraded(ReaderError):
    """A store file is unreadable or corrupt.

    Only raised to callers when strict reads are enabled; otherwise the store
    logs it and behaves as if the file were empty.
    """


class StorageWriteError(ReaderError):
    """Durable write of a store file failed; the previous file is intact."""


class TaskFailure(ReaderError):
    """A pipeline task for one chapter failed.

    The underlying error is kept as ``__cause__``; ``reason`` is the
    human-readable text shown to the user.
    """

    def __init__(self, document_id: str, reason: str, stage: Optional[str] = None):
        super().__init__(reason)
        self.document_id = document_id
        self.reason = reason
        self.stage = stage

    @classmethod
    def from_exception(
        cls, document_id: str, exc: BaseException, stage: Optional[str] = None
    ) -> "TaskFailure":
        if isinstance(exc, FetchError):
            kind = "fetch failed"
        elif isinstance(exc, ServiceError):
            kind = "translation service failed"
        elif isinstance(exc, StorageWriteError):
            kind = "storage write failed"
        elif isinstance(exc, StorageReadDegraded):
            kind = "storage unreadable"
        else:
            kind = "unexpected error"
        failure = cls(document_id, f"{kind}: {exc}", stage)
        failure.__cause__ = exc
        return failure
