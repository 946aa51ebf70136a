class IndexerError(Exception):
    """Base class for cryptindex errors."""


class MissingEntryError(IndexerError, KeyError):
    """Raised when move/copy is asked for a name the index does not hold."""

    def __str__(self) -> str:
        return f"No such entry: {self.args[0]!r}" if self.args else "No such entry"


# Tree build invariants
class TreeConsistencyError(IndexerError):
    pass


# Manifest reading
class ManifestDecodeError(IndexerError):
    pass


class ManifestFormatError(ManifestDecodeError):
    pass


# Storage
class ReadOnlySourceError(IndexerError):
    pass
