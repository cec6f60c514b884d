"""Loading note content for downstream consumers."""

import hashlib
from pathlib import Path

from .exceptions import LoaderError, UnsupportedFileTypeError
from .models import MarkdownFile


def load_file(path: Path) -> MarkdownFile:
    """
    Load a file with the loader registered for its suffix.

    Raises:
        UnsupportedFileTypeError: If no loader handles the suffix
        LoaderError: If the file cannot be read
    """
    suffix = path.suffix.lower()
    if suffix == ".md":
        return load_markdown_file(path)
    raise UnsupportedFileTypeError(f"unsupported file type: {path}")


def load_markdown_file(path: Path) -> MarkdownFile:
    """Read a markdown note and fingerprint its content."""
    if not path.exists():
        raise LoaderError(f"file does not exist: {path}")

    try:
        content = path.read_bytes()
    except OSError as e:
        raise LoaderError(f"failed to read file {path}: {e}") from e

    return MarkdownFile(
        path=path,
        content=content,
        checksum=hashlib.sha256(content).hexdigest(),
    )
