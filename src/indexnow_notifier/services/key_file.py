"""IndexNow API key resolution and key-location file provisioning."""

from __future__ import annotations

import logging
import re
import secrets
from pathlib import Path

from indexnow_notifier.config import Settings

API_KEY_BYTES = 16
API_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9-]{8,128}$")

_key_logger = logging.getLogger("indexnow_notifier.key_file")


def generate_api_key() -> str:
    """Return a new 32 character hexadecimal key."""

    return secrets.token_hex(API_KEY_BYTES)


def is_valid_api_key(api_key: str) -> bool:
    return API_KEY_PATTERN.fullmatch(api_key) is not None


def _read_key(path: Path) -> str | None:
    if not path.is_file():
        return None
    stored_key = path.read_text(encoding="utf-8").strip()
    return stored_key or None


def resolve_api_key(settings: Settings) -> str:
    """Return the configured key, else the stored key, else a newly generated one."""

    if settings.INDEXNOW_API_KEY is not None:
        configured_key = settings.INDEXNOW_API_KEY.get_secret_value().strip()
        if not is_valid_api_key(configured_key):
            raise ValueError(
                "INDEXNOW_API_KEY must be 8-128 characters of letters, digits or '-'"
            )
        return configured_key

    key_path = settings.INDEXNOW_API_KEY_FILE
    stored_key = _read_key(key_path)
    if stored_key is not None:
        if not is_valid_api_key(stored_key):
            raise ValueError(f"Stored IndexNow key in {key_path} is not a valid key")
        return stored_key

    new_key = generate_api_key()
    key_path.parent.mkdir(parents=True, exist_ok=True)
    key_path.write_text(new_key, encoding="utf-8")
    _key_logger.info("indexnow_api_key_generated", extra={"key_path": str(key_path)})
    return new_key


def key_file_path(web_root: Path, api_key: str) -> Path:
    return web_root / f"{api_key}.txt"


def key_file_matches(web_root: Path, api_key: str) -> bool:
    """Return whether ``<web_root>/<key>.txt`` exists and holds exactly the key."""

    return _read_key(key_file_path(web_root, api_key)) == api_key


def ensure_key_file(web_root: Path | None, api_key: str) -> Path | None:
    """Write the key-location file into ``web_root``; returns None when there is no web root."""

    if web_root is None or not web_root.is_dir():
        _key_logger.warning(
            "indexnow_key_file_skipped",
            extra={"web_root": str(web_root) if web_root else None},
        )
        return None

    path = key_file_path(web_root, api_key)
    if key_file_matches(web_root, api_key):
        return path

    path.write_text(api_key, encoding="utf-8")
    _key_logger.info("indexnow_key_file_written", extra={"key_file": str(path)})
    return path


__all__ = [
    "ensure_key_file",
    "generate_api_key",
    "is_valid_api_key",
    "key_file_matches",
    "key_file_path",
    "resolve_api_key",
]
