"""Local ssh-agent / ssh-add wrapper."""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from deploykeys.core.config import default_ssh_dir
from deploykeys.core.exceptions import AgentError

logger = logging.getLogger(__name__)

_AGENT_ENV_RE = re.compile(r"^(SSH_AUTH_SOCK|SSH_AGENT_PID)=(.*); export \1")


class CredentialAgent(Protocol):
    def list_keys(self) -> list[str]: ...


def _which(name: str) -> str:
    path = shutil.which(name)
    if not path:
        raise AgentError(f"{name} executable not found on PATH")
    return path


def export_variable(name: str, value: str) -> None:
    """Set a variable for this process and, under Actions, for later steps."""
    os.environ[name] = value
    env_file = os.environ.get("GITHUB_ENV")
    if env_file:
        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        with open(env_file, "a", encoding="utf-8") as f:
            f.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")


class SshAgent:
    """Drives the OpenSSH agent binaries on the local machine."""

    def __init__(self, ssh_add_path: str | None = None, ssh_agent_path: str | None = None) -> None:
        self.ssh_add_path = ssh_add_path or _which("ssh-add")
        self.ssh_agent_path = ssh_agent_path or _which("ssh-agent")
        self._dot_ssh_path: Path | None = None

    def _run(self, args: list[str], input: str | None = None) -> subprocess.CompletedProcess[str]:
        logger.debug("Running %s", " ".join(args))
        try:
            return subprocess.run(args, input=input, capture_output=True, text=True)
        except OSError as exc:
            raise AgentError(f"Failed to run {args[0]}: {exc}") from exc

    def start_agent(self) -> dict[str, str]:
        """Start ssh-agent and export its socket/pid variables."""
        result = self._run([self.ssh_agent_path, "-s"])
        if result.returncode != 0:
            raise AgentError(f"ssh-agent exited with {result.returncode}: {result.stderr.strip()}")

        env: dict[str, str] = {}
        for line in result.stdout.splitlines():
            m = _AGENT_ENV_RE.match(line)
            if m:
                env[m.group(1)] = m.group(2)
        if "SSH_AUTH_SOCK" not in env:
            raise AgentError("ssh-agent did not report SSH_AUTH_SOCK")
        for name, value in env.items():
            export_variable(name, value)
        return env

    def load_private_keys(self, keys: Iterable[str]) -> int:
        """Feed each private key to ssh-add. Returns how many were accepted."""
        loaded = 0
        for key in keys:
            result = self._run([self.ssh_add_path, "-"], input=f"{key}\n")
            if result.returncode == 0:
                loaded += 1
            else:
                logger.warning("ssh-add rejected a key: %s", result.stderr.strip())
        return loaded

    def list_keys(self) -> list[str]:
        """Public key lines of the identities held by the agent."""
        result = self._run([self.ssh_add_path, "-L"])
        # ssh-add exits 1 when the agent holds no identities
        if result.returncode == 1:
            return []
        if result.returncode != 0:
            raise AgentError(f"Failed to run {self.ssh_add_path} -L: {result.stderr.strip()}")
        return [line for line in result.stdout.strip().splitlines() if line.strip()]

    def kill_agent(self) -> None:
        result = self._run([self.ssh_agent_path, "-k"])
        if result.returncode != 0:
            raise AgentError(f"ssh-agent -k exited with {result.returncode}: {result.stderr.strip()}")

    def dot_ssh_path(self) -> Path:
        if self._dot_ssh_path is None:
            self._dot_ssh_path = default_ssh_dir()
        return self._dot_ssh_path
