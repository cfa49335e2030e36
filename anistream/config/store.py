"""Durable key-value settings store.

Holds provider credentials, session tokens, the device id and the preferred
locale across restarts. Keys are dotted paths (``hidive.user.id``) mapped onto
nested YAML mappings.

Credentials (``password`` and ``refresh_token`` leaves) are Fernet encrypted
on disk with a key kept beside the store file. They are plain text in memory.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from cryptography.fernet import Fernet, InvalidToken

from anistream.exceptions import SettingsStoreError
from anistream.utils.logging import _get_logger

__all__ = ["SECRET_FIELDS", "SettingsStore"]

_log = _get_logger(__name__)

_MISSING = object()

SECRET_FIELDS = frozenset({"password", "refresh_token"})
ENCRYPTED_PREFIX = "fernet:"


class SettingsStore:
    """YAML-backed store, written back to disk on every change."""

    def __init__(self, path: Path, key_path: Path | None = None) -> None:
        """Load the store from ``path`` if it exists.

        Args:
            path (Path): File backing the store.
            key_path (Path | None): Encryption key file. Defaults to
                ``.<store name>.key`` in the directory of ``path``; it is
                created on first use.

        Raises:
            SettingsStoreError: If the file exists but cannot be parsed or its
                credentials cannot be decrypted with the key.
        """
        self.path = Path(path)
        self.key_path = (
            Path(key_path)
            if key_path is not None
            else self.path.with_name(f".{self.path.stem}.key")
        )
        self._fernet = Fernet(self._load_key())
        self._data: dict[str, Any] = {}

        if self.path.is_file():
            try:
                loaded = yaml.safe_load(self.path.read_text(encoding="utf-8"))
            except (OSError, yaml.YAMLError) as e:
                raise SettingsStoreError(
                    f"Could not read settings store at {self.path}"
                ) from e
            if loaded is not None and not isinstance(loaded, dict):
                raise SettingsStoreError(
                    f"Settings store at {self.path} is not a mapping"
                )
            self._data = self._decrypt(loaded or {})

    def get(self, key: str, default: Any = None) -> Any:
        """Get the value stored under a dotted key.

        Args:
            key (str): Dotted key, e.g. ``crunchyroll.session_id``.
            default (Any): Value returned when the key is missing or None.

        Returns:
            Any: The stored value or ``default``.
        """
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return default if node is None else node

    def set(self, key: str, value: Any) -> None:
        """Store a value under a dotted key and persist the store.

        Args:
            key (str): Dotted key.
            value (Any): YAML serializable value. ``None`` clears the key.
        """
        *parents, leaf = key.split(".")
        node = self._data
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[leaf] = value
        self._save()

    def delete(self, key: str) -> None:
        """Remove a dotted key, persisting only when something was removed."""
        *parents, leaf = key.split(".")
        node: Any = self._data
        for part in parents:
            node = node.get(part) if isinstance(node, dict) else None
            if node is None:
                return
        if isinstance(node, dict) and node.pop(leaf, _MISSING) is not _MISSING:
            self._save()

    def __contains__(self, key: str) -> bool:
        """Check whether a dotted key holds a non-null value."""
        return self.get(key, _MISSING) is not _MISSING

    def _load_key(self) -> bytes:
        try:
            if self.key_path.is_file():
                return self.key_path.read_bytes().strip()
            key = Fernet.generate_key()
            self.key_path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(key)
        except OSError as e:
            raise SettingsStoreError(
                f"Could not load settings key at {self.key_path}"
            ) from e
        _log.debug(f"Created settings key $$'{self.key_path}'$$")
        return key

    def _encrypt(self, node: Any) -> Any:
        if not isinstance(node, dict):
            return node
        result = {}
        for k, v in node.items():
            if k in SECRET_FIELDS and isinstance(v, str):
                token = self._fernet.encrypt(v.encode("utf-8")).decode("ascii")
                result[k] = ENCRYPTED_PREFIX + token
            else:
                result[k] = self._encrypt(v)
        return result

    def _decrypt(self, node: Any) -> Any:
        if not isinstance(node, dict):
            return node
        result = {}
        for k, v in node.items():
            if (
                k in SECRET_FIELDS
                and isinstance(v, str)
                and v.startswith(ENCRYPTED_PREFIX)
            ):
                try:
                    plain = self._fernet.decrypt(v[len(ENCRYPTED_PREFIX) :])
                except InvalidToken as e:
                    raise SettingsStoreError(
                        f"Could not decrypt {k!r} in {self.path} with key "
                        f"{self.key_path}"
                    ) from e
                result[k] = plain.decode("utf-8")
            else:
                result[k] = self._decrypt(v)
        return result

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(
                yaml.safe_dump(
                    self._encrypt(self._data), sort_keys=True, allow_unicode=True
                ),
                encoding="utf-8",
            )
            tmp_path.replace(self.path)
        except OSError as e:
            _log.error(f"Failed to persist settings store $$'{self.path}'$$: {e}")
            raise SettingsStoreError(
                f"Could not write settings store at {self.path}"
            ) from e
