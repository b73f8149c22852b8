"""Persistence for the quick-cov snapshot file."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from .errors import CacheMissingError, MalformedSnapshotError
from .schema import Snapshot

DEFAULT_CACHE_PATH = Path(".quick-cov-report.json")
LOGGER = logging.getLogger(__name__)


class CacheStore:
    """JSON-file backed store holding exactly one complete snapshot.

    Writes go to a temporary sibling file that then replaces the cache in a
    single rename, so readers only ever see the previous or the new snapshot.
    The store does not lock; concurrent writers are unsupported.
    """

    def __init__(self, path: Path | str = DEFAULT_CACHE_PATH) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Snapshot:
        """Read the persisted snapshot; raise ``CacheMissingError`` when absent."""
        if not self.exists():
            raise CacheMissingError(f"No cache file found at {self.path}")

        with self.path.open("r", encoding="utf-8") as handle:
            try:
                payload = json.load(handle)
            except json.JSONDecodeError as error:
                raise MalformedSnapshotError(f"Cache file {self.path} is not valid JSON: {error}") from error
        try:
            snapshot = Snapshot.model_validate(payload)
        except ValidationError as error:
            raise MalformedSnapshotError(f"Cache file {self.path} is not a valid snapshot: {error}") from error
        LOGGER.debug(
            "Loaded cache %s (%d source file(s), %d test file(s))",
            self.path,
            len(snapshot.source_files),
            len(snapshot.test_files),
        )
        return snapshot

    def save(self, snapshot: Snapshot) -> None:
        """Serialise ``snapshot`` in full and atomically replace the cache file."""
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        content = json.dumps(snapshot.to_payload(), indent=2, sort_keys=True) + "\n"

        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=directory,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_path = Path(handle.name)
                handle.write(content)
            os.replace(temp_path, self.path)
        except OSError:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            raise
        LOGGER.debug("Wrote cache %s", self.path)

    def clear(self) -> bool:
        """Delete the cache file, returning ``True`` when one existed."""
        if not self.exists():
            return False
        self.path.unlink()
        LOGGER.debug("Removed cache %s", self.path)
        return True


__all__ = ["CacheStore", "DEFAULT_CACHE_PATH"]
