"""Configuration for the obsidian-sync package."""

import fnmatch
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from .exceptions import ConfigError


@dataclass
class WatcherConfig:
    """
    Configuration options for the vault watcher.

    Attributes:
        debounce_ms: Quiet period after the latest raw event before pending
            changes are resolved
        stale_threshold_ms: Pending changes older than this when the quiet
            period ends are dropped
        markdown_suffix: File suffix (case-sensitive) of tracked notes
        hidden_prefix: Name prefix marking hidden directories
        ignore_prefixes: Name prefixes of files that are never tracked
            (hidden files, editor swap and backup files)
        ignore_patterns: Extra glob patterns for files to ignore
        follow_symlinks: Whether to descend into symlinked directories
        flush_on_stop: Whether to resolve buffered changes on shutdown
    """
    debounce_ms: int = 100
    stale_threshold_ms: int = 5000
    markdown_suffix: str = ".md"
    hidden_prefix: str = "."
    ignore_prefixes: Tuple[str, ...] = (".", "~")
    ignore_patterns: List[str] = field(default_factory=list)
    follow_symlinks: bool = False
    flush_on_stop: bool = True

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def stale_threshold_seconds(self) -> float:
        return self.stale_threshold_ms / 1000.0

    def should_ignore(self, path: Path) -> bool:
        """
        Check if a path should be ignored based on ignore patterns.

        Args:
            path: Path to check

        Returns:
            True if the path matches one of the ignore patterns
        """
        path_str = str(path)
        name = path.name

        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(name, pattern):
                return True
            if fnmatch.fnmatch(path_str, f"*/{pattern}"):
                return True
            if fnmatch.fnmatch(path_str, pattern):
                return True

        return False

    def is_markdown_file(self, path: Path) -> bool:
        """
        Check whether a path names a note the watcher tracks.

        The suffix check is case-sensitive. Names starting with one of
        ``ignore_prefixes`` are rejected.
        """
        if path.suffix != self.markdown_suffix:
            return False
        if path.name.startswith(self.ignore_prefixes):
            return False
        return not self.should_ignore(path)

    def is_hidden_dir(self, path: Path) -> bool:
        return path.name.startswith(self.hidden_prefix)


def _get_env(env: Mapping[str, str], key: str, default: str) -> str:
    value = env.get(key)
    if value:
        return value
    return default


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    value = env.get(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"invalid {key}: {value!r}") from e


@dataclass
class AppConfig:
    """Process-level configuration, loaded from the environment."""
    vault_path: Path
    version: str = "dev"
    s3_bucket: str = ""
    aws_region: str = "us-east-1"
    log_level: str = "info"
    log_file: str = "logs/obsidian-sync.log"
    http_port: int = 8080
    watcher: WatcherConfig = field(default_factory=WatcherConfig)

    def __post_init__(self):
        if isinstance(self.vault_path, str):
            self.vault_path = Path(self.vault_path)

    @classmethod
    def load(
        cls,
        env: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[Path] = None,
    ) -> "AppConfig":
        """
        Load configuration from environment variables.

        When ``env`` is not given, a ``.env`` file is loaded first and the
        process environment is used.

        Raises:
            ConfigError: If a value is malformed or validation fails
        """
        if env is None:
            load_dotenv(dotenv_path)
            env = os.environ

        vault_path = _get_env(env, "VAULT_PATH", "")
        if not vault_path:
            raise ConfigError("VAULT_PATH is required")

        watcher = WatcherConfig(
            debounce_ms=_get_int(env, "DEBOUNCE_MS", 100),
            stale_threshold_ms=_get_int(env, "STALE_THRESHOLD_MS", 5000),
        )
        config = cls(
            vault_path=Path(vault_path),
            version=_get_env(env, "APP_VERSION", "dev"),
            s3_bucket=_get_env(env, "S3_BUCKET", ""),
            aws_region=_get_env(env, "AWS_REGION", "us-east-1"),
            log_level=_get_env(env, "LOG_LEVEL", "info"),
            log_file=_get_env(env, "LOG_FILE", "logs/obsidian-sync.log"),
            http_port=_get_int(env, "HTTP_PORT", 8080),
            watcher=watcher,
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ConfigError if the configuration cannot be used."""
        if not self.vault_path.exists():
            raise ConfigError(f"vault path does not exist: {self.vault_path}")
        if not self.vault_path.is_dir():
            raise ConfigError(f"vault path is not a directory: {self.vault_path}")
        if self.watcher.debounce_ms <= 0:
            raise ConfigError("DEBOUNCE_MS must be positive")
        if self.watcher.stale_threshold_ms <= 0:
            raise ConfigError("STALE_THRESHOLD_MS must be positive")

    def __str__(self) -> str:
        return (
            f"AppConfig(version={self.version}, vault_path={self.vault_path}, "
            f"s3_bucket={self.s3_bucket}, aws_region={self.aws_region}, "
            f"log_level={self.log_level})"
        )
