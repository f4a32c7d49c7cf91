"""Best-effort removal of transient folders left behind by test runs."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable

from ops_common.config.env import parse_list_env

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_PATTERNS = ("TestResults", ".pester-*")


def cleanup_patterns(explicit: Iterable[str] | None = None) -> tuple[str, ...]:
    patterns = list(explicit or []) or parse_list_env(os.environ.get("OPS_CLEANUP_PATTERNS"))
    return tuple(patterns) or DEFAULT_CLEANUP_PATTERNS


def cleanup_workspace(root: Path, patterns: Iterable[str] = DEFAULT_CLEANUP_PATTERNS) -> list[Path]:
    """Delete directories under ``root`` matching any glob pattern.

    Failures are logged and skipped; the returned list holds what was removed.
    """
    removed: list[Path] = []
    if not root.is_dir():
        return removed
    candidates: dict[Path, None] = {}
    for pattern in patterns:
        for path in root.rglob(pattern):
            if path.is_dir():
                candidates.setdefault(path, None)
    # Parents first; children vanish with them.
    for path in sorted(candidates, key=lambda p: len(p.parts)):
        if not path.exists():
            continue
        try:
            shutil.rmtree(path)
        except OSError as exc:
            logger.warning("Could not remove %s: %s", path, exc)
            continue
        logger.debug("Removed %s", path)
        removed.append(path)
    return removed
