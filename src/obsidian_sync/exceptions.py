"""Custom exceptions for the obsidian-sync package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class SourceError(WatcherError):
    """The filesystem notification source could not be created or started."""
    pass


class WatchRootError(WatcherError):
    """The watch root cannot be traversed."""
    pass


class WatcherAlreadyRunningError(WatcherError):
    """Watcher is already running."""
    pass


class ConfigError(WatcherError):
    """Configuration is missing or invalid."""
    pass


class LoaderError(WatcherError):
    """A file could not be loaded."""
    pass


class UnsupportedFileTypeError(LoaderError):
    """File type is not supported by any loader."""
    pass
