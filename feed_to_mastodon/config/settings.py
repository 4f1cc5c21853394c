"""Configuration management for feed-to-mastodon."""
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from ..domain.models import Visibility
from ..errors import ValidationError


CONFIG_FILENAME = "feed-to-mastodon.yaml"
ENV_PREFIX = "FEED_TO_MASTODON_"
USER_CONFIG_DIR = Path("~/.config/feed-to-mastodon")

DEFAULTS: dict[str, Any] = {
    "feed_url": "",
    "mastodon_server": "",
    "mastodon_token": "",
    "mastodon_client_id": "",
    "mastodon_client_secret": "",
    "database_path": "feed-to-mastodon.db",
    "template_path": "post-template.txt",
    "character_limit": 500,
    "posts_per_run": 0,
    "post_visibility": Visibility.PUBLIC.value,
    "content_warning": "",
    "log_dir": "",
    "log_level": "INFO",
    "request_timeout": 30,
}

INT_KEYS = ("character_limit", "posts_per_run", "request_timeout")

DEFAULT_CONFIG_TEXT = """# Feed to Mastodon Configuration
# REQUIRED: Feed URL to fetch
feed_url: "https://example.com/feed.xml"

# REQUIRED: Mastodon server URL
mastodon_server: "https://mastodon.social"

# Mastodon access token
# Create a token at: Settings > Development > New Application
# Required scopes: write:statuses
# Leave empty to use the token stored by the 'link' and 'code' commands.
mastodon_token: ""

# OPTIONAL: OAuth application credentials for the 'link' and 'code' commands
# mastodon_client_id: ""
# mastodon_client_secret: ""

# OPTIONAL: Database file path (default: ./feed-to-mastodon.db)
database_path: "feed-to-mastodon.db"

# OPTIONAL: Template file path (default: ./post-template.txt)
template_path: "post-template.txt"

# OPTIONAL: Character limit for posts (default: 500)
character_limit: 500

# OPTIONAL: Post visibility (public, unlisted, private, direct)
# Default: public
post_visibility: "public"

# OPTIONAL: Content warning / spoiler text
# Default: none
# content_warning: "Automated post"

# OPTIONAL: Number of entries to post per run (0 = all)
# Default: 0
posts_per_run: 0

# OPTIONAL: Directory for rotating log files (default: no log file)
# log_dir: "logs"
"""


class Config:
    """
    Configuration for a feed-to-mastodon project.

    Values come from (lowest to highest precedence) built-in defaults,
    the YAML config file and ``FEED_TO_MASTODON_*`` environment variables.
    """

    def __init__(self, values: Optional[dict[str, Any]] = None, base_dir: Optional[Path] = None,
                 config_file: Optional[Path] = None):
        """
        Initialize configuration from already-merged values.

        Args:
            values: Mapping of config keys to values (missing keys use defaults)
            base_dir: Directory relative paths are resolved against
            config_file: Path of the file the values were read from, if any
        """
        merged = dict(DEFAULTS)
        merged.update({k: v for k, v in (values or {}).items() if v is not None})

        self.config_file = config_file
        self.base_dir = (base_dir or Path.cwd()).resolve()

        self.feed_url: str = str(merged["feed_url"]).strip()
        self.mastodon_server: str = str(merged["mastodon_server"]).strip().rstrip("/")
        self.mastodon_token: str = str(merged["mastodon_token"]).strip()
        self.mastodon_client_id: str = str(merged["mastodon_client_id"]).strip()
        self.mastodon_client_secret: str = str(merged["mastodon_client_secret"]).strip()

        self.database_path = self._resolve_path(str(merged["database_path"]))
        self.template_path = self._resolve_path(str(merged["template_path"]))
        log_dir = str(merged["log_dir"]).strip()
        self.log_dir: Optional[Path] = self._resolve_path(log_dir) if log_dir else None
        self.log_level: str = str(merged["log_level"]).upper()

        self.character_limit = self._to_int("character_limit", merged["character_limit"])
        self.posts_per_run = self._to_int("posts_per_run", merged["posts_per_run"])
        self.request_timeout = self._to_int("request_timeout", merged["request_timeout"])

        self.post_visibility: str = str(merged["post_visibility"]).strip().lower()
        self.content_warning: str = str(merged["content_warning"] or "")

    def _resolve_path(self, path_str: str) -> Path:
        """
        Resolve a path string to an absolute Path.

        If the path is already absolute, returns it as-is.
        If relative, resolves it relative to the config file directory.

        Args:
            path_str: Path string from config or environment

        Returns:
            Absolute Path object
        """
        path = Path(path_str).expanduser()
        if path.is_absolute():
            return path
        return (self.base_dir / path).resolve()

    @staticmethod
    def _to_int(key: str, value: Any) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be an integer, got {value!r}") from None

    def validate(self, require_feed: bool = True, require_server: bool = True) -> None:
        """
        Check that required configuration is present and well-formed.

        Args:
            require_feed: Require ``feed_url`` (fetch path)
            require_server: Require ``mastodon_server`` (post and auth paths)

        Raises:
            ValidationError: If a required key is missing or a value is invalid
        """
        if require_feed and not self.feed_url:
            raise ValidationError("feed_url is required")
        if require_server and not self.mastodon_server:
            raise ValidationError("mastodon_server is required")
        if not Visibility.is_valid(self.post_visibility):
            raise ValidationError(
                "post_visibility must be one of: " + ", ".join(v.value for v in Visibility)
            )
        if self.character_limit <= 0:
            raise ValidationError("character_limit must be positive")
        if self.posts_per_run < 0:
            raise ValidationError("posts_per_run must be 0 (all) or positive")


def find_config_file(config_file: Optional[str | Path] = None) -> Optional[Path]:
    """
    Locate the config file to read.

    An explicit path must exist. Otherwise the current directory and
    ``~/.config/feed-to-mastodon`` are searched in that order.

    Returns:
        Path to the config file, or None when no file is found
    """
    if config_file:
        path = Path(config_file).expanduser()
        if not path.is_file():
            raise ValidationError(f"config file not found: {path}")
        return path

    for candidate in (Path.cwd() / CONFIG_FILENAME, USER_CONFIG_DIR.expanduser() / CONFIG_FILENAME):
        if candidate.is_file():
            return candidate
    return None


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ValidationError(f"error reading config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"config file {path} must contain a mapping")
    return data


def _read_env() -> dict[str, str]:
    values = {}
    for key in DEFAULTS:
        env_value = os.getenv(ENV_PREFIX + key.upper())
        if env_value is not None:
            values[key] = env_value
    return values


def load_config(config_file: Optional[str | Path] = None) -> Config:
    """
    Load configuration from file and environment variables.

    Args:
        config_file: Optional explicit config file path

    Returns:
        Config instance
    """
    # Load .env file if it exists
    load_dotenv()

    path = find_config_file(config_file)
    values: dict[str, Any] = _read_yaml(path) if path else {}
    values.update(_read_env())

    base_dir = path.parent if path else Path.cwd()
    return Config(values, base_dir=base_dir, config_file=path)
