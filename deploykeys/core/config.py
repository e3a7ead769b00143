import os
from pathlib import Path

DEPLOYKEYS_HOME = Path.home() / ".deploykeys"
STATE_DIR = DEPLOYKEYS_HOME / "state"
STATE_KEY = "deploy_keys"
KNOWN_HOSTS_STATE_KEY = "known_hosts"

SSH_CONFIG_NAME = "config"
KNOWN_HOSTS_NAME = "known_hosts"

# Mode for files created by setup (key files, ssh config, state)
DEFAULT_FILE_MODE = 0o600


def ensure_state_dir(state_dir: Path | None = None) -> Path:
    """Create the state directory if it doesn't exist."""
    d = state_dir or STATE_DIR
    d.mkdir(parents=True, exist_ok=True)
    return d


def default_ssh_dir() -> Path:
    """Return ~/.ssh, creating it with owner-only permissions if needed."""
    d = Path.home() / ".ssh"
    d.mkdir(mode=0o700, parents=True, exist_ok=True)
    return d


def running_in_actions() -> bool:
    """True when the process runs as a GitHub Actions step."""
    return os.environ.get("GITHUB_ACTIONS") == "true"
