"""Persist generated artifacts, or compare them with what is on disk."""

from __future__ import annotations

import logging
from pathlib import Path

from awkgen.config import atomic_write

logger = logging.getLogger(__name__)


def write_artifacts(artifacts: dict[str, str], out_dir: Path) -> list[Path]:
    """Write every artifact into *out_dir* atomically.

    Returns:
        The written paths, in artifact order.
    """
    written: list[Path] = []
    for name, text in artifacts.items():
        path = out_dir / name
        atomic_write(path, text)
        logger.debug("Wrote %s (%d bytes)", path, len(text.encode("utf-8")))
        written.append(path)
    return written


def stale_artifacts(artifacts: dict[str, str], out_dir: Path) -> list[str]:
    """Names of artifacts that are missing from *out_dir* or differ from it."""
    stale: list[str] = []
    for name, text in artifacts.items():
        path = out_dir / name
        try:
            current = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            stale.append(name)
            continue
        if current != text:
            stale.append(name)
    return stale
