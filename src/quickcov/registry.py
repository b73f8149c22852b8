"""Track file fingerprints and report which paths were added or modified."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .hashing import fingerprint_file
from .schema import FileFingerprint

LOGGER = logging.getLogger(__name__)


def fingerprint_all(
    paths: Sequence[str],
    *,
    workers: Optional[int] = None,
) -> Dict[str, FileFingerprint]:
    """Fingerprint every path in ``paths``.

    Unreadable paths raise ``OSError``. With ``workers`` greater than one the
    files are hashed on a thread pool; the returned mapping still follows the
    order of ``paths``.
    """

    unique = list(dict.fromkeys(str(path) for path in paths))
    if workers and workers > 1 and len(unique) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            digests = list(pool.map(fingerprint_file, unique))
    else:
        digests = [fingerprint_file(path) for path in unique]
    return {path: FileFingerprint(hash=digest) for path, digest in zip(unique, digests)}


def changed_or_added(
    known: Mapping[str, Any],
    candidate_paths: Sequence[str],
) -> List[str]:
    """Return candidates missing from ``known`` followed by modified known paths.

    Entries of ``known`` only need a ``hash`` attribute, so both test-file
    fingerprints and source-file coverage records can be checked.

    A known path is modified when it still exists and its current digest differs
    from the stored one. Known paths whose file was deleted are skipped rather
    than reported. Candidates only gate additions: known paths absent from
    ``candidate_paths`` are still checked for modification.
    """

    added: List[str] = []
    for path in dict.fromkeys(str(entry) for entry in candidate_paths):
        if path not in known:
            added.append(path)

    modified: List[str] = []
    for path, entry in known.items():
        if not Path(path).exists():
            LOGGER.debug("Skipping deleted cache entry %s", path)
            continue
        if fingerprint_file(path) != entry.hash:
            modified.append(path)

    return [*added, *modified]


__all__ = ["changed_or_added", "fingerprint_all"]
