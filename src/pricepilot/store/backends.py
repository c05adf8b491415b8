"""
Key/value backends for PricePilot stores.

Each key holds one JSON array. Writes replace the whole array; the file
backend does so atomically so a failed write leaves the previous array
intact.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

from ..canon import pretty_json
from ..exceptions import StoreError

logger = logging.getLogger(__name__)


class StoreBackend(Protocol):
    def read(self, key: str) -> list[dict[str, Any]]:
        """Items stored under key; empty when the key is absent."""
        ...

    def write(self, key: str, items: list[dict[str, Any]]) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryBackend:
    """Process-local backend; stores serialized JSON so callers never share objects."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def read(self, key: str) -> list[dict[str, Any]]:
        raw = self._data.get(key)
        return json.loads(raw) if raw else []

    def write(self, key: str, items: list[dict[str, Any]]) -> None:
        self._data[key] = pretty_json(items)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


def write_json_atomic(path: Path, payload: Any) -> None:
    """
    Write JSON atomically (crash-safe).

    Process:
    1. Write to <name>.tmp
    2. fsync tmp file
    3. Replace target (atomic on POSIX)
    4. fsync directory
    """
    tmp_file = path.with_name(path.name + ".tmp")
    data = pretty_json(payload)
    try:
        with open(tmp_file, "w", encoding="utf-8") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_file, path)
    except OSError:
        if tmp_file.exists():
            tmp_file.unlink()
        raise

    dir_fd = os.open(str(path.parent), os.O_RDONLY | os.O_DIRECTORY)
    try:
        os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


class JsonFileBackend:
    """One ``<key>.json`` file per key under a directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> list[dict[str, Any]]:
        path = self._path(key)
        if not path.exists():
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(
                message=f"Cannot read store key {key}",
                details={"path": str(path), "upstream": str(e)},
            ) from e
        if not isinstance(data, list):
            raise StoreError(message=f"Store key {key} does not hold a JSON array",
                             details={"path": str(path)})
        return data

    def write(self, key: str, items: list[dict[str, Any]]) -> None:
        path = self._path(key)
        try:
            write_json_atomic(path, items)
        except OSError as e:
            raise StoreError(
                message=f"Cannot write store key {key}",
                details={"path": str(path), "upstream": str(e)},
            ) from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
