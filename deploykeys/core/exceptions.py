class DeployKeysError(Exception):
    """Base exception for all deploykeys errors."""


class KeyParseError(DeployKeysError):
    """Key material could not be parsed."""


class SSHConfigError(DeployKeysError):
    """An SSH client config file is malformed or could not be written."""


class AgentError(DeployKeysError):
    """ssh-agent or ssh-add failed."""


class GitConfigError(DeployKeysError):
    """A git config command failed."""


class StateError(DeployKeysError):
    """Reconciliation state could not be persisted."""
