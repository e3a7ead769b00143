"""State handed from the setup process to the later cleanup process."""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Protocol, TypeVar

from pydantic import BaseModel, Field, ValidationError

from deploykeys.core.config import DEFAULT_FILE_MODE, STATE_KEY, ensure_state_dir
from deploykeys.core.exceptions import StateError
from deploykeys.core.git_urls import MappedHost

logger = logging.getLogger(__name__)

STATE_VERSION = 1


class StateStore(Protocol):
    def save(self, key: str, value: str) -> None: ...

    def load(self, key: str) -> str | None: ...

    def discard(self, key: str) -> None: ...


class FileStateStore:
    """One JSON document per key under a state directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def save(self, key: str, value: str) -> None:
        try:
            ensure_state_dir(self.directory)
            path = self._path(key)
            path.write_text(value)
            path.chmod(DEFAULT_FILE_MODE)
        except OSError as exc:
            raise StateError(f"Failed to save state '{key}': {exc}") from exc

    def load(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text()

    def discard(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class ActionsStateStore:
    """GitHub Actions step state: written to $GITHUB_STATE, read back as STATE_<key>."""

    def save(self, key: str, value: str) -> None:
        state_file = os.environ.get("GITHUB_STATE")
        if not state_file:
            raise StateError("GITHUB_STATE is not set")
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        try:
            with open(state_file, "a", encoding="utf-8") as f:
                f.write(f"{key}<<{delimiter}\n{value}\n{delimiter}\n")
        except OSError as exc:
            raise StateError(f"Failed to save state '{key}': {exc}") from exc

    def load(self, key: str) -> str | None:
        return os.environ.get(f"STATE_{key}")

    def discard(self, key: str) -> None:
        # The runner drops step state when the job ends.
        pass


def make_state_store(state_dir: Path | None = None) -> StateStore:
    if os.environ.get("GITHUB_STATE"):
        return ActionsStateStore()
    return FileStateStore(state_dir or ensure_state_dir())


class VersionedState(BaseModel):
    version: int = STATE_VERSION


class ReconciliationState(VersionedState):
    """What setup changed, so cleanup can undo exactly that."""

    mapped_hosts: list[MappedHost] = Field(default_factory=list)
    key_files: list[str] = Field(default_factory=list)
    ssh_config_path: str | None = None

    def is_empty(self) -> bool:
        return not (self.mapped_hosts or self.key_files or self.ssh_config_path)


M = TypeVar("M", bound=VersionedState)


def save_record(store: StateStore, key: str, record: VersionedState) -> None:
    store.save(key, record.model_dump_json())


def load_record(store: StateStore, key: str, model: type[M]) -> M:
    """Load a record, falling back to an empty one.

    A missing record means setup never ran and is expected. An unreadable,
    invalid or foreign-version record is logged as a warning before being
    treated as empty.
    """
    try:
        raw = store.load(key)
    except (OSError, ValueError) as exc:
        logger.warning("Could not read state '%s', assuming nothing to clean up: %s", key, exc)
        return model()
    if raw is None or not raw.strip():
        logger.debug("No state '%s' recorded", key)
        return model()
    try:
        record = model.model_validate_json(raw)
    except ValidationError as exc:
        logger.warning("Ignoring corrupt state '%s': %s", key, exc)
        return model()
    if record.version != STATE_VERSION:
        logger.warning("Ignoring state '%s' with unsupported version %s", key, record.version)
        return model()
    return record


def save_state(store: StateStore, state: ReconciliationState) -> None:
    save_record(store, STATE_KEY, state)


def load_state(store: StateStore) -> ReconciliationState:
    return load_record(store, STATE_KEY, ReconciliationState)
