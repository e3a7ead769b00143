"""Job setup and cleanup commands (the action's main and post steps)."""

from __future__ import annotations

from pathlib import Path

import click

from deploykeys.core.console import error, group, info, success, warning
from deploykeys.core.deploy_keys import cleanup_deploy_keys, config_deploy_keys
from deploykeys.core.exceptions import AgentError, DeployKeysError, GitConfigError
from deploykeys.core.git import GitConfig
from deploykeys.core.keys import get_public_keys, parse_private_keys
from deploykeys.core.known_hosts import cleanup_known_hosts, config_known_hosts
from deploykeys.core.ssh_agent import SshAgent
from deploykeys.core.state import make_state_store

_state_dir_option = click.option(
    "--state-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="DEPLOYKEYS_STATE_DIR",
    default=None,
    help="Where setup records its changes for cleanup",
)


@click.command()
@click.option(
    "--private-key",
    envvar="SSH_PRIVATE_KEY",
    required=True,
    help="One or more private keys (PEM/OpenSSH), concatenated",
)
@click.option(
    "--known-hosts",
    envvar="SSH_KNOWN_HOSTS",
    default="",
    help="known_hosts lines to add, one per line",
)
@click.option(
    "--ssh-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="DEPLOYKEYS_SSH_DIR",
    default=None,
    help="SSH directory for key files and config (default: ~/.ssh)",
)
@_state_dir_option
def setup(private_key: str, known_hosts: str, ssh_dir: Path | None, state_dir: Path | None) -> None:
    """Start ssh-agent, load keys and configure deploy keys."""
    try:
        private_keys = parse_private_keys(private_key.strip())

        with group("Gathering utilities"):
            agent = SshAgent()
            git = GitConfig()

        with group("Starting ssh-agent"):
            agent.start_agent()

        with group(f"Loading {len(private_keys)} private key(s)"):
            loaded = agent.load_private_keys(private_keys)
            info(f"ssh-add accepted {loaded} key(s)")

        base_path = ssh_dir or agent.dot_ssh_path()
        base_path.mkdir(mode=0o700, parents=True, exist_ok=True)
        store = make_state_store(state_dir)

        with group("Configuring SSH known_hosts"):
            added = config_known_hosts(base_path, known_hosts.splitlines(), store)
            info(f"Added {added} known host(s)")

        with group("Configuring deploy keys"):
            pub_keys = get_public_keys(agent)
            info(f"Got {len(pub_keys)} key(s) to check")
            info(f"Using {base_path} for SSH key storage and config")
            deployed = config_deploy_keys(base_path, pub_keys, git, store)
    except DeployKeysError as exc:
        error(str(exc))
        raise SystemExit(1)

    success(f"Configured {deployed} key(s) to use as deploy keys")


@click.command()
@_state_dir_option
@click.option("--keep-agent", is_flag=True, help="Leave ssh-agent running")
def cleanup(state_dir: Path | None, keep_agent: bool) -> None:
    """Undo everything setup changed."""
    store = make_state_store(state_dir)
    failed = False

    if not keep_agent:
        with group("Killing ssh-agent"):
            try:
                SshAgent().kill_agent()
            except AgentError as exc:
                warning(str(exc))

    with group("Cleaning up SSH known_hosts"):
        removed = cleanup_known_hosts(store)
        info(f"Removed {removed} known host(s)")

    with group("Cleaning up deploy keys"):
        try:
            git = GitConfig()
        except GitConfigError as exc:
            error(str(exc))
            failed = True
        else:
            cleanup_deploy_keys(git, store)

    if failed:
        raise SystemExit(1)
    success("Cleanup complete")
