"""Map deploy keys to per-key SSH host aliases.

The alias is derived from a SHA-256 of the key's full comment, so it is
stable across runs and processes. Two different keys that carry the exact
same comment get the same alias and overwrite each other; callers must give
each deploy key a distinct comment.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass

from deploykeys.core.comments import DeployKeyMatch, classify
from deploykeys.core.keys import PublicKey


@dataclass(frozen=True)
class AliasedDeployKey(DeployKeyMatch):
    file_name: str = ""
    mapped_host: str = ""


def compute_alias(match: DeployKeyMatch) -> AliasedDeployKey:
    """Attach the key file name and mapped host for a classified key."""
    digest = hashlib.sha256(match.comment.encode()).hexdigest()
    kind = "org" if match.is_org_scoped else "repo"
    return AliasedDeployKey(
        algorithm=match.algorithm,
        material=match.material,
        comment=match.comment,
        user=match.user,
        host=match.host,
        repo_path=match.repo_path,
        is_org_scoped=match.is_org_scoped,
        file_name=f"{kind}-{digest}.pub",
        mapped_host=f"{kind}-{digest}.{match.host}",
    )


def select_deploy_keys(keys: Iterable[PublicKey]) -> list[DeployKeyMatch]:
    """Keep only keys whose comment classifies as a deploy key."""
    return [m for m in (classify(k) for k in keys) if m is not None]


def alias_deploy_keys(keys: Iterable[PublicKey]) -> list[AliasedDeployKey]:
    return [compute_alias(m) for m in select_deploy_keys(keys)]
