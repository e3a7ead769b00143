"""Deploy key setup and cleanup.

Setup aliases every scoped key found in the agent, writes its public key,
adds an ssh config Host block and git URL rewrites for it, then records what
it did. Cleanup runs in a later, separate process and undoes exactly what
was recorded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from deploykeys.core.aliases import AliasedDeployKey, alias_deploy_keys
from deploykeys.core.config import DEFAULT_FILE_MODE, SSH_CONFIG_NAME, STATE_KEY
from deploykeys.core.exceptions import DeployKeysError
from deploykeys.core.git import GitConfigStore
from deploykeys.core.git_urls import MappedHost, apply_rewrites, remove_rewrites, rewrite_target
from deploykeys.core.keys import PublicKey
from deploykeys.core.ssh_config import merge_ssh_config, remove_ssh_config_hosts, render_blocks
from deploykeys.core.state import ReconciliationState, StateStore, load_state, save_state

logger = logging.getLogger(__name__)


def _unique_by_alias(keys: list[AliasedDeployKey]) -> list[AliasedDeployKey]:
    by_alias: dict[str, AliasedDeployKey] = {}
    for key in keys:
        if key.mapped_host in by_alias:
            logger.warning(
                "Keys share the comment '%s'; only the last one will be used", key.comment
            )
        by_alias[key.mapped_host] = key
    return list(by_alias.values())


def write_key_file(base_path: Path, key: AliasedDeployKey) -> Path:
    path = base_path / key.file_name
    path.write_text(f"{key.to_line()}\n")
    path.chmod(DEFAULT_FILE_MODE)
    return path


def config_deploy_keys(
    base_path: Path | str,
    public_keys: Iterable[PublicKey],
    git: GitConfigStore,
    store: StateStore,
) -> int:
    """Configure ssh and git for every deploy key among public_keys.

    Args:
        base_path: Directory holding the ssh config and key files (usually ~/.ssh)
        public_keys: Identities listed by the agent
        git: Global git config collaborator
        store: Where the record for cleanup is saved

    Returns:
        Number of deploy keys configured

    Raises:
        DeployKeysError: If any step fails; what was done so far is still recorded
    """
    keys = _unique_by_alias(alias_deploy_keys(public_keys))
    if not keys:
        logger.info("No deploy keys found")
        return 0

    base = Path(base_path)
    state = ReconciliationState()
    try:
        for key in keys:
            state.key_files.append(str(write_key_file(base, key)))

        config_path = base / SSH_CONFIG_NAME
        merge_ssh_config(config_path, render_blocks(base, keys))
        state.ssh_config_path = str(config_path)
        # Recorded up front so a failed rewrite still gets its Host block removed
        state.mapped_hosts = [
            MappedHost(mapped_host=k.mapped_host, mapped_uri=rewrite_target(k)) for k in keys
        ]

        for key in keys:
            apply_rewrites(git, key)
    except DeployKeysError:
        _save_partial(store, state)
        raise
    except OSError as exc:
        _save_partial(store, state)
        raise DeployKeysError(f"Failed to configure deploy keys in {base}: {exc}") from exc

    save_state(store, state)
    return len(keys)


def _save_partial(store: StateStore, state: ReconciliationState) -> None:
    if state.is_empty():
        return
    try:
        save_state(store, state)
    except DeployKeysError as exc:
        logger.warning("Could not record partial setup for cleanup: %s", exc)


def cleanup_deploy_keys(git: GitConfigStore, store: StateStore) -> None:
    """Undo whatever the recorded setup did.

    Every action is attempted even if earlier ones fail; failures are
    logged, never raised.
    """
    state = load_state(store)
    if state.is_empty():
        logger.info("No deploy keys to clean up")
        return

    for key_file in state.key_files:
        try:
            Path(key_file).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete key file %s: %s", key_file, exc)

    if state.ssh_config_path:
        try:
            remove_ssh_config_hosts(
                Path(state.ssh_config_path), (m.mapped_host for m in state.mapped_hosts)
            )
        except (OSError, ValueError, DeployKeysError) as exc:
            logger.warning("Could not clean up %s: %s", state.ssh_config_path, exc)

    for mapped in state.mapped_hosts:
        try:
            remove_rewrites(git, mapped.mapped_uri)
        except DeployKeysError as exc:
            logger.warning("Could not remove git rewrite for %s: %s", mapped.mapped_uri, exc)

    try:
        store.discard(STATE_KEY)
    except OSError as exc:
        logger.warning("Could not discard recorded state: %s", exc)
