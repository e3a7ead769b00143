"""OpenSSH client config generation and merging.

The config file is handled as an ordered list of sections rather than as a
text blob, so generated ``Host`` blocks can be inserted and later removed
without touching anything else. Rendering a parsed document reproduces the
original text byte for byte.
"""

from __future__ import annotations

import logging
import os
import re
import stat
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import paramiko

from deploykeys.core.aliases import AliasedDeployKey
from deploykeys.core.config import DEFAULT_FILE_MODE
from deploykeys.core.exceptions import SSHConfigError

logger = logging.getLogger(__name__)

_HEADER_RE = re.compile(r"^\s*(host|match)(?:\s*=\s*|\s+)(.*?)\s*$", re.IGNORECASE)


def _quote(value: str) -> str:
    return f'"{value}"' if any(c.isspace() for c in value) else value


@dataclass(frozen=True)
class SshConfigBlock:
    """A generated Host block pinning one alias to one identity file."""

    host: str
    hostname: str
    identity_file: str
    identities_only: str = "yes"

    def render(self) -> str:
        return (
            f"Host {self.host}\n"
            f"  HostName {self.hostname}\n"
            f"  IdentityFile {_quote(self.identity_file)}\n"
            f"  IdentitiesOnly {self.identities_only}\n"
            "\n"
        )


@dataclass
class HostSection:
    """A Host or Match header plus the directives that follow it."""

    keyword: str
    value: str
    lines: list[str] = field(default_factory=list)

    def matches(self, host: str) -> bool:
        return self.keyword.lower() == "host" and self.value.strip('"') == host

    def __str__(self) -> str:
        return "".join(self.lines)


@dataclass
class RawSection:
    """Comments, blank lines and global directives outside any Host block."""

    lines: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return "".join(self.lines)


class SshConfigDocument:
    """Ordered, round-trip safe model of an ssh_config file."""

    def __init__(self, sections: list[HostSection | RawSection] | None = None) -> None:
        self.sections: list[HostSection | RawSection] = sections or []

    @classmethod
    def parse(cls, text: str, *, validate: bool = True) -> SshConfigDocument:
        """Split config text into sections.

        A Host section runs from its header up to and including the first
        blank line. Anything after that blank line, up to the next header,
        is a raw section, so global directives placed after a generated
        block never become part of it.

        Raises:
            SSHConfigError: If validate is set and the text is not valid
                ssh_config syntax
        """
        if validate:
            try:
                paramiko.SSHConfig.from_text(text)
            except (paramiko.ssh_exception.ConfigParseError, ValueError) as exc:
                raise SSHConfigError(f"Malformed SSH config: {exc}") from exc

        sections: list[HostSection | RawSection] = []
        current: HostSection | None = None
        pending: list[str] = []

        def flush() -> None:
            nonlocal current
            if current is not None:
                sections.append(current)
                current = None
            if pending:
                sections.append(RawSection(list(pending)))
                pending.clear()

        for line in text.splitlines(keepends=True):
            header = _HEADER_RE.match(line)
            if header:
                flush()
                current = HostSection(keyword=header.group(1), value=header.group(2), lines=[line])
            elif current is None:
                pending.append(line)
            else:
                current.lines.append(line)
                if not line.strip():
                    flush()
        flush()
        return cls(sections)

    def __str__(self) -> str:
        return "".join(str(s) for s in self.sections)

    def hosts(self) -> list[str]:
        return [s.value for s in self.sections if isinstance(s, HostSection)]

    def find(self, host: str) -> HostSection | None:
        for s in self.sections:
            if isinstance(s, HostSection) and s.matches(host):
                return s
        return None

    def prepend(self, blocks: Sequence[SshConfigBlock]) -> None:
        """Insert blocks ahead of all existing content (first match wins in ssh)."""
        rendered = "".join(b.render() for b in blocks)
        self.sections[:0] = SshConfigDocument.parse(rendered, validate=False).sections

    def remove_hosts(self, hosts: Iterable[str]) -> int:
        """Drop every Host section whose value is one of hosts. Returns the count."""
        wanted = set(hosts)
        kept = [
            s
            for s in self.sections
            if not (isinstance(s, HostSection) and any(s.matches(h) for h in wanted))
        ]
        removed = len(self.sections) - len(kept)
        self.sections = kept
        return removed


def render_blocks(base_path: Path | str, keys: Iterable[AliasedDeployKey]) -> list[SshConfigBlock]:
    """Build one Host block per aliased key, pointing at its public key file."""
    return [
        SshConfigBlock(
            host=k.mapped_host,
            hostname=k.host,
            identity_file=str(Path(base_path) / k.file_name),
        )
        for k in keys
    ]


def read_config_text(path: Path) -> str:
    """Read a user-owned config file; undecodable bytes survive a later write."""
    return path.read_text(encoding="utf-8", errors="surrogateescape")


def write_preserving_mode(path: Path, content: str) -> None:
    """Atomically replace path, keeping its mode or creating it owner-only."""
    mode = stat.S_IMODE(path.stat().st_mode) if path.exists() else DEFAULT_FILE_MODE
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_text(content, encoding="utf-8", errors="surrogateescape")
    os.chmod(tmp_path, mode)
    os.replace(tmp_path, path)


def merge_ssh_config(path: Path, blocks: Sequence[SshConfigBlock]) -> None:
    """Prepend blocks to the config at path, leaving existing content as is.

    Raises:
        SSHConfigError: If the existing file is malformed or cannot be written
    """
    existing = read_config_text(path) if path.exists() else ""
    doc = SshConfigDocument.parse(existing)
    doc.prepend(blocks)
    try:
        write_preserving_mode(path, str(doc))
    except OSError as exc:
        raise SSHConfigError(f"Failed to write SSH config {path}: {exc}") from exc
    logger.info("Wrote %d host block(s) to %s", len(blocks), path)


def remove_ssh_config_hosts(path: Path, hosts: Iterable[str]) -> int:
    """Remove the Host blocks for hosts from the config at path.

    A missing file means there is nothing to remove. Returns the number of
    blocks removed.
    """
    if not path.exists():
        return 0
    doc = SshConfigDocument.parse(read_config_text(path), validate=False)
    removed = doc.remove_hosts(hosts)
    if removed:
        write_preserving_mode(path, str(doc))
    logger.info("Removed %d host block(s) from %s", removed, path)
    return removed
