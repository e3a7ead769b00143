"""Seed known_hosts for the job and remove exactly the added lines afterwards."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import Field

from deploykeys.core.config import KNOWN_HOSTS_NAME, KNOWN_HOSTS_STATE_KEY
from deploykeys.core.ssh_config import read_config_text, write_preserving_mode
from deploykeys.core.state import StateStore, VersionedState, load_record, save_record

logger = logging.getLogger(__name__)


class KnownHostsState(VersionedState):
    path: str | None = None
    lines: list[str] = Field(default_factory=list)


def add_known_hosts(base_path: Path, lines: Iterable[str]) -> list[str]:
    """Append lines missing from {base_path}/known_hosts. Returns the lines added."""
    path = base_path / KNOWN_HOSTS_NAME
    existing = read_config_text(path) if path.exists() else ""
    present = {line.strip() for line in existing.splitlines()}

    added: list[str] = []
    for line in lines:
        entry = line.strip()
        if entry and entry not in present and entry not in added:
            added.append(entry)
    if not added:
        return []

    if existing and not existing.endswith("\n"):
        existing += "\n"
    write_preserving_mode(path, existing + "".join(f"{a}\n" for a in added))
    logger.info("Added %d known host(s) to %s", len(added), path)
    return added


def remove_known_hosts(path: Path, lines: Iterable[str]) -> int:
    """Drop the given lines from a known_hosts file. Returns the count removed."""
    if not path.exists():
        return 0
    wanted = {line.strip() for line in lines}
    content = read_config_text(path).splitlines(keepends=True)
    kept = [line for line in content if line.strip() not in wanted]
    removed = len(content) - len(kept)
    if removed:
        write_preserving_mode(path, "".join(kept))
    return removed


def config_known_hosts(base_path: Path, lines: Iterable[str], store: StateStore) -> int:
    added = add_known_hosts(base_path, lines)
    if added:
        record = KnownHostsState(path=str(base_path / KNOWN_HOSTS_NAME), lines=added)
        save_record(store, KNOWN_HOSTS_STATE_KEY, record)
    return len(added)


def cleanup_known_hosts(store: StateStore) -> int:
    """Undo config_known_hosts; failures are logged rather than raised."""
    record = load_record(store, KNOWN_HOSTS_STATE_KEY, KnownHostsState)
    if not record.path or not record.lines:
        return 0
    try:
        removed = remove_known_hosts(Path(record.path), record.lines)
    except OSError as exc:
        logger.warning("Could not clean up %s: %s", record.path, exc)
        return 0
    try:
        store.discard(KNOWN_HOSTS_STATE_KEY)
    except OSError as exc:
        logger.warning("Could not discard recorded state: %s", exc)
    return removed
