"""Tests for deploykeys/core/ssh_config.py — ssh config document model and merging."""

from __future__ import annotations

import pytest

from deploykeys.core.aliases import compute_alias
from deploykeys.core.comments import classify
from deploykeys.core.exceptions import SSHConfigError
from deploykeys.core.keys import PublicKey
from deploykeys.core.ssh_config import (
    HostSection,
    RawSection,
    SshConfigBlock,
    SshConfigDocument,
    merge_ssh_config,
    remove_ssh_config_hosts,
    render_blocks,
)

EXISTING = """\
# personal settings
ServerAliveInterval 60

Host foo
  HostName foo.example.com
  # jump through bastion
  ProxyJump bastion

Host *
  User me
"""


def _block(host: str = "bar") -> SshConfigBlock:
    return SshConfigBlock(host=host, hostname="github.com", identity_file="/home/u/.ssh/bar.pub")


class TestSshConfigDocument:
    def test_round_trip_is_byte_identical(self):
        assert str(SshConfigDocument.parse(EXISTING)) == EXISTING

    def test_round_trip_without_trailing_newline(self):
        text = "Host a\n  User x\n\n\nHost b\n  User y"
        assert str(SshConfigDocument.parse(text)) == text

    def test_round_trip_empty(self):
        assert str(SshConfigDocument.parse("")) == ""

    def test_hosts_in_order(self):
        assert SshConfigDocument.parse(EXISTING).hosts() == ["foo", "*"]

    def test_comment_inside_block_belongs_to_block(self):
        section = SshConfigDocument.parse(EXISTING).find("foo")
        assert isinstance(section, HostSection)
        assert "  # jump through bastion\n" in section.lines

    def test_equals_syntax_header(self):
        doc = SshConfigDocument.parse("Host=foo\n  User x\n")
        assert doc.find("foo") is not None

    def test_malformed_config_raises(self):
        with pytest.raises(SSHConfigError, match="Malformed"):
            SshConfigDocument.parse("Host foo\n  IdentityFile\n")

    def test_prepend_puts_blocks_first(self):
        doc = SshConfigDocument.parse(EXISTING)
        doc.prepend([_block("bar")])
        assert doc.hosts() == ["bar", "foo", "*"]
        assert str(doc).endswith(EXISTING)

    def test_remove_hosts_returns_count(self):
        doc = SshConfigDocument.parse(EXISTING)
        assert doc.remove_hosts(["foo", "missing"]) == 1
        assert doc.hosts() == ["*"]

    def test_remove_hosts_ignores_match_sections(self):
        doc = SshConfigDocument.parse("Match host foo\n  User x\n")
        assert doc.remove_hosts(["host foo"]) == 0

    def test_remove_after_prepend_restores_original(self):
        doc = SshConfigDocument.parse(EXISTING)
        doc.prepend([_block("bar"), _block("baz")])
        reparsed = SshConfigDocument.parse(str(doc))
        assert reparsed.remove_hosts(["bar", "baz"]) == 2
        assert str(reparsed) == EXISTING

    def test_global_directive_after_blank_line_is_not_part_of_block(self):
        doc = SshConfigDocument.parse("Host bar\n  User x\n\nServerAliveInterval 60\n")
        section = doc.find("bar")
        assert section is not None
        assert "ServerAliveInterval 60\n" not in section.lines
        assert isinstance(doc.sections[-1], RawSection)

    def test_remove_keeps_global_directives_after_generated_block(self):
        existing = "# mine\nServerAliveInterval 60\n"
        doc = SshConfigDocument.parse(existing)
        doc.prepend([_block("bar")])
        reparsed = SshConfigDocument.parse(str(doc))
        reparsed.remove_hosts(["bar"])
        assert str(reparsed) == existing

    def test_remove_keeps_leading_blank_lines_of_following_content(self):
        existing = "\n\n# top comment\nHost foo\n  User x\n"
        doc = SshConfigDocument.parse(existing)
        doc.prepend([_block("bar")])
        reparsed = SshConfigDocument.parse(str(doc))
        reparsed.remove_hosts(["bar"])
        assert str(reparsed) == existing


class TestRenderBlocks:
    def test_block_render_format(self):
        assert _block("bar").render() == (
            "Host bar\n"
            "  HostName github.com\n"
            "  IdentityFile /home/u/.ssh/bar.pub\n"
            "  IdentitiesOnly yes\n"
            "\n"
        )

    def test_identity_file_with_spaces_is_quoted(self):
        block = SshConfigBlock(host="h", hostname="x", identity_file="/a b/k.pub")
        assert '  IdentityFile "/a b/k.pub"\n' in block.render()

    def test_render_blocks_from_aliased_keys(self, ssh_dir):
        key = compute_alias(classify(PublicKey("", "", "github.com:username/repo")))
        blocks = render_blocks(ssh_dir, [key])
        assert blocks == [
            SshConfigBlock(
                host=key.mapped_host,
                hostname="github.com",
                identity_file=str(ssh_dir / key.file_name),
                identities_only="yes",
            )
        ]
        doc = SshConfigDocument.parse("")
        doc.prepend(blocks)
        assert doc.find(key.mapped_host) is not None


class TestMergeSshConfig:
    def test_creates_file_owner_only(self, ssh_dir):
        path = ssh_dir / "config"
        merge_ssh_config(path, [_block()])
        assert path.read_text() == _block().render()
        assert oct(path.stat().st_mode)[-3:] == "600"

    def test_preserves_existing_mode(self, ssh_dir):
        path = ssh_dir / "config"
        path.write_text(EXISTING)
        path.chmod(0o644)
        merge_ssh_config(path, [_block()])
        assert oct(path.stat().st_mode)[-3:] == "644"

    def test_new_block_precedes_existing(self, ssh_dir):
        path = ssh_dir / "config"
        path.write_text("Host foo\n  User x\n")
        merge_ssh_config(path, [_block("bar")])
        content = path.read_text()
        assert content.index("Host bar") < content.index("Host foo")

    def test_malformed_existing_config_is_not_overwritten(self, ssh_dir):
        path = ssh_dir / "config"
        path.write_text("Host\n")
        with pytest.raises(SSHConfigError):
            merge_ssh_config(path, [_block()])
        assert path.read_text() == "Host\n"

    def test_merge_then_remove_round_trip(self, ssh_dir):
        path = ssh_dir / "config"
        path.write_text(EXISTING)
        merge_ssh_config(path, [_block("bar")])
        assert remove_ssh_config_hosts(path, ["bar"]) == 1
        assert path.read_text() == EXISTING

    def test_remove_keeps_blocks_added_after_merge(self, ssh_dir):
        path = ssh_dir / "config"
        merge_ssh_config(path, [_block("bar")])
        with path.open("a") as f:
            f.write("Host manual\n  User me\n")
        remove_ssh_config_hosts(path, ["bar"])
        assert path.read_text() == "Host manual\n  User me\n"

    def test_remove_from_missing_file_is_noop(self, ssh_dir):
        assert remove_ssh_config_hosts(ssh_dir / "config", ["bar"]) == 0
        assert not (ssh_dir / "config").exists()

    def test_remove_unknown_host_leaves_file_untouched(self, ssh_dir):
        path = ssh_dir / "config"
        path.write_text(EXISTING)
        assert remove_ssh_config_hosts(path, ["nope"]) == 0
        assert path.read_text() == EXISTING

    def test_merge_then_remove_keeps_trailing_global_directives(self, ssh_dir):
        path = ssh_dir / "config"
        path.write_text("# mine\nServerAliveInterval 60\n")
        merge_ssh_config(path, [_block("bar")])
        assert remove_ssh_config_hosts(path, ["bar"]) == 1
        assert path.read_text() == "# mine\nServerAliveInterval 60\n"

    def test_non_utf8_bytes_survive_merge_and_remove(self, ssh_dir):
        path = ssh_dir / "config"
        path.write_bytes(b"# caf\xe9\nHost foo\n  User me\n")
        merge_ssh_config(path, [_block("bar")])
        assert remove_ssh_config_hosts(path, ["bar"]) == 1
        assert path.read_bytes() == b"# caf\xe9\nHost foo\n  User me\n"
