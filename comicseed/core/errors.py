from typing import Dict, List, Optional


class SeedError(Exception):
    """Base class for everything the seed pipeline raises on purpose"""


class SourceError(SeedError):
    """A JSON source file is missing, unreadable or malformed"""

    def __init__(self, path, message: str):
        self.path = str(path)
        super().__init__(f"{self.path}: {message}")


class RecordValidationError(SeedError):
    """A record does not match its schema. Carries field -> messages."""

    def __init__(self, entity: str, errors: Dict[str, List[str]], index: Optional[int] = None):
        self.entity = entity
        self.errors = errors
        self.index = index
        fields = ", ".join(sorted(errors)) or "record"
        where = f" at index {index}" if index is not None else ""
        super().__init__(f"Invalid {entity}{where}: {fields}")


class UpstreamIOError(SeedError):
    """Image download/upload or a database write failed for one record"""


class ConfigurationError(SeedError):
    """Unknown upload provider or missing environment configuration. Fatal."""


class SeedLockedError(ConfigurationError):
    """Another seed run holds the lock file"""
