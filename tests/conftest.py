from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from deploykeys.core.state import FileStateStore


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Redirect all deploykeys paths to a temp directory for test isolation."""
    monkeypatch.setattr("deploykeys.core.config.DEPLOYKEYS_HOME", tmp_path)
    monkeypatch.setattr("deploykeys.core.config.STATE_DIR", tmp_path / "state")
    for var in ("GITHUB_ACTIONS", "GITHUB_STATE", "GITHUB_ENV"):
        monkeypatch.delenv(var, raising=False)
    (tmp_path / "ssh").mkdir()
    yield tmp_path


@pytest.fixture
def ssh_dir(isolated_config):
    return isolated_config / "ssh"


@pytest.fixture
def state_store(isolated_config):
    return FileStateStore(isolated_config / "state")


@pytest.fixture
def mock_git():
    """Return a MagicMock git config collaborator."""
    git = MagicMock()
    git.set_config.return_value = None
    git.rm_config.return_value = None
    return git


def generate_keypair(comment: str) -> tuple[str, str]:
    """Return (private key in OpenSSH format, public key line with comment)."""
    private_key = Ed25519PrivateKey.generate()
    private = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.OpenSSH,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    ).decode()
    return private, f"{public} {comment}"
