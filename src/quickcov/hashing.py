"""Content fingerprints used to detect file modification."""

from __future__ import annotations

import hashlib
from pathlib import Path


def fingerprint(content: bytes) -> str:
    """Return the SHA-256 hex digest of ``content``."""
    return hashlib.sha256(content).hexdigest()


def fingerprint_file(path: Path | str) -> str:
    """Read ``path`` and fingerprint its bytes; ``OSError`` propagates."""
    return fingerprint(Path(path).read_bytes())


__all__ = ["fingerprint", "fingerprint_file"]
