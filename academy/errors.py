from __future__ import annotations


class HubError(Exception):
    """Base class for every error raised by the academy package."""


class ValidationError(HubError, ValueError):
    """Input rejected before any write. Carries one message per field."""

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class ResolutionError(HubError, LookupError):
    """A referenced record (course, material, student, sale) no longer exists."""


class StoreError(HubError):
    """A store operation failed."""


class DocumentNotFound(StoreError, KeyError):
    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"No document '{doc_id}' in '{collection}'.")

    def __str__(self) -> str:
        return self.args[0]


class BatchTooLarge(StoreError):
    pass
