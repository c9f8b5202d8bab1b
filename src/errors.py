"""Error types raised by the i18n tooling."""
from typing import Optional


class I18nError(Exception):
    """Base class for all fatal tooling errors."""

    def __init__(self, message: str, path: Optional[str] = None, operation: Optional[str] = None):
        self.message = message
        self.path = str(path) if path is not None else None
        self.operation = operation
        super().__init__(self._render())

    def _render(self) -> str:
        text = self.message
        if self.path:
            text = f'{text} (path: "{self.path}")'
        if self.operation:
            text = f"{self.operation}: {text}"
        return text


class ConfigError(I18nError):
    """Missing or malformed project settings."""


class PathError(I18nError):
    """A declared path does not exist."""


class FormatError(I18nError):
    """Unknown file extension or malformed locale file content."""


class EncodingError(I18nError):
    """Serialization of a translation table failed."""
