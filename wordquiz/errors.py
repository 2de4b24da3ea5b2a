"""
Error taxonomy for the vocabulary store.

Validation and index errors are raised before anything is written, so state is
untouched. StorageError is raised after a failed durable write; the in-memory
collection stays at its last persisted value.
"""


class VocabError(Exception):
    """Base class for store errors."""


class ValidationError(VocabError):
    """A required input was empty or malformed."""


class InvalidIndex(VocabError):
    """A category reference was out of range."""


class NoCategorySelected(VocabError):
    """The target category does not exist (anymore)."""


class StorageError(VocabError):
    """The durable write failed."""
