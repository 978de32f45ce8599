# SPDX-License-Identifier: MIT
"""Configuration reader for icepeek.

Settings live in a JSON file (see get_settings_path) and are addressed by
dot-notation keys. Storage credentials are resolved from command line
flags first, then the environment, then settings.
"""
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from .paths import PathResolver

DEFAULT_PAGE_SIZE = 500
DEFAULT_S3_REGION = "us-east-1"


def get_settings_path() -> Path:
    """Get path to the icepeek settings.json.

    Returns:
        Path to settings.json, respecting ICEPEEK_SETTINGS env var.
    """
    custom = os.environ.get("ICEPEEK_SETTINGS")
    if custom:
        return Path(custom)
    return PathResolver.config_dir() / "settings.json"


def get_setting(key: str, default: Any = None) -> Any:
    """Get a setting value by dot-notation key.

    Args:
        key: Dot-notation key like "s3.region"
        default: Default value if key not found

    Returns:
        Setting value or default
    """
    settings_path = get_settings_path()

    if not settings_path.exists():
        return default

    try:
        with open(settings_path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, IOError):
        return default

    current = data
    for part in key.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]

    return current


def get_bool_setting(key: str, default: bool = False) -> bool:
    """Get a boolean setting.

    Converts string "true", "1", "yes" to True.
    """
    value = get_setting(key, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes")
    return bool(value)


def get_int_setting(key: str, default: int = 0) -> int:
    """Get an integer setting, falling back to default if conversion fails."""
    value = get_setting(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def default_page_size() -> int:
    """Rows fetched per page; the pageSize setting overrides the built-in 500."""
    size = get_int_setting("pageSize", DEFAULT_PAGE_SIZE)
    return size if size > 0 else DEFAULT_PAGE_SIZE


def effective_limit(limit: Optional[int], no_limit: bool) -> Optional[int]:
    """Row limit for the initial scan.

    Args:
        limit: Explicit limit from the command line, if any
        no_limit: True to scan every row

    Returns:
        None when unlimited, otherwise the explicit limit or the page size.
    """
    if no_limit:
        return None
    return limit if limit is not None else default_page_size()


@dataclass
class StorageConfig:
    """Object storage settings passed through to the table store."""

    region: str = DEFAULT_S3_REGION
    endpoint: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    @classmethod
    def resolve(
        cls,
        endpoint: Optional[str] = None,
        region: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
    ) -> "StorageConfig":
        """Build a config from explicit values, the environment and settings.

        Explicit (non-empty) arguments win over S3_ENDPOINT, AWS_REGION,
        AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY, which win over the
        "s3.*" settings keys.
        """
        return cls(
            region=(
                region
                or os.environ.get("AWS_REGION")
                or get_setting("s3.region")
                or DEFAULT_S3_REGION
            ),
            endpoint=endpoint or os.environ.get("S3_ENDPOINT") or get_setting("s3.endpoint"),
            access_key_id=access_key_id or os.environ.get("AWS_ACCESS_KEY_ID"),
            secret_access_key=secret_access_key or os.environ.get("AWS_SECRET_ACCESS_KEY"),
        )

    def storage_props(self) -> Dict[str, str]:
        """FileIO / catalog properties understood by pyiceberg."""
        props = {"s3.region": self.region}
        if self.endpoint:
            props["s3.endpoint"] = self.endpoint
            props["s3.path-style-access"] = "true"
        if self.access_key_id:
            props["s3.access-key-id"] = self.access_key_id
        if self.secret_access_key:
            props["s3.secret-access-key"] = self.secret_access_key
        return props
