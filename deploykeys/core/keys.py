"""Public and private key text parsing."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from deploykeys.core.exceptions import KeyParseError

if TYPE_CHECKING:
    from deploykeys.core.ssh_agent import CredentialAgent

_PRIVATE_KEY_RE = re.compile(
    r"-----BEGIN ([A-Z0-9 ]+ )?PRIVATE KEY-----.*?-----END \1?PRIVATE KEY-----",
    re.DOTALL,
)


@dataclass(frozen=True)
class PublicKey:
    """One identity line as listed by ssh-add -L or stored in a .pub file."""

    algorithm: str
    material: str
    comment: str = ""

    @classmethod
    def from_line(cls, line: str) -> PublicKey:
        parts = line.strip().split(None, 2)
        if len(parts) < 2:
            raise KeyParseError(f"Invalid public key line: {line!r}")
        comment = parts[2] if len(parts) == 3 else ""
        return cls(algorithm=parts[0], material=parts[1], comment=comment)

    def to_line(self) -> str:
        return " ".join(p for p in (self.algorithm, self.material, self.comment) if p)


def parse_private_keys(data: str) -> list[str]:
    """Split a blob holding one or more PEM/OpenSSH private keys.

    Args:
        data: Raw text, typically the contents of a CI secret

    Returns:
        Each private key block, in input order

    Raises:
        KeyParseError: If no private key block is present
    """
    keys = [m.group(0) for m in _PRIVATE_KEY_RE.finditer(data)]
    if not keys:
        raise KeyParseError("No private keys found in input")
    return keys


def parse_public_keys(lines: Iterable[str]) -> list[PublicKey]:
    """Parse agent output lines, skipping blanks."""
    return [PublicKey.from_line(line) for line in lines if line.strip()]


def get_public_keys(agent: CredentialAgent) -> list[PublicKey]:
    """List the identities currently held by the agent."""
    return parse_public_keys(agent.list_keys())
