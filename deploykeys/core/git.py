"""Global git configuration access."""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Protocol

from deploykeys.core.exceptions import GitConfigError

logger = logging.getLogger(__name__)


class GitConfigStore(Protocol):
    def set_config(self, name: str, value: str, replace: bool = False) -> None: ...

    def rm_config(self, name: str) -> None: ...


class GitConfig:
    """Runs ``git config --global`` for multi-valued keys."""

    def __init__(self, git_path: str | None = None) -> None:
        path = git_path or shutil.which("git")
        if not path:
            raise GitConfigError("git executable not found on PATH")
        self.git_path = path

    def _run(self, args: list[str]) -> None:
        cmd = [self.git_path, "config", "--global", *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as exc:
            raise GitConfigError(
                f"git config {' '.join(args)} exited with {exc.returncode}: {exc.stderr.strip()}"
            ) from exc
        except OSError as exc:
            raise GitConfigError(f"Failed to run {self.git_path}: {exc}") from exc

    def set_config(self, name: str, value: str, replace: bool = False) -> None:
        """Set name to value; replace clears every existing value first."""
        self._run(["--replace-all" if replace else "--add", name, value])

    def rm_config(self, name: str) -> None:
        """Remove all values of name."""
        self._run(["--unset-all", name])
