"""Inspect agent identities."""

import click

from deploykeys.core.aliases import compute_alias
from deploykeys.core.comments import classify
from deploykeys.core.console import error, info, print_table
from deploykeys.core.exceptions import DeployKeysError
from deploykeys.core.keys import get_public_keys
from deploykeys.core.ssh_agent import SshAgent


@click.command()
def keys() -> None:
    """List agent identities and the alias each deploy key maps to."""
    try:
        pub_keys = get_public_keys(SshAgent())
    except DeployKeysError as exc:
        error(str(exc))
        raise SystemExit(1)

    if not pub_keys:
        info("The agent has no identities.")
        return

    rows = []
    for key in pub_keys:
        match = classify(key)
        if match is None:
            rows.append((key.comment or "—", "—", "—", "—", "—"))
            continue
        aliased = compute_alias(match)
        scope = "org" if match.is_org_scoped else "repo"
        rows.append((key.comment, scope, match.host, match.repo_path, aliased.mapped_host))

    print_table("Agent Keys", ["Comment", "Scope", "Host", "Path", "Alias"], rows)
