"""Git insteadOf rewrites that route a repo's URLs through its SSH alias."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from deploykeys.core.aliases import AliasedDeployKey
from deploykeys.core.git import GitConfigStore

logger = logging.getLogger(__name__)


class MappedHost(BaseModel):
    """An alias and the rewrite target registered for it."""

    mapped_host: str
    mapped_uri: str


def original_urls(key: AliasedDeployKey) -> list[str]:
    """The URL spellings of the repo/org that should go through the alias."""
    return [
        f"https://{key.host}/{key.repo_path}",
        f"{key.user}@{key.host}:{key.repo_path}",
        f"ssh://{key.user}@{key.host}/{key.repo_path}",
    ]


def rewrite_target(key: AliasedDeployKey) -> str:
    return f"{key.user}@{key.mapped_host}:{key.repo_path}"


def config_name(target: str) -> str:
    return f"url.{target}.insteadOf"


def apply_rewrites(git: GitConfigStore, key: AliasedDeployKey) -> MappedHost:
    """Register every original URL as insteadOf the alias target.

    The first value resets any values left by an earlier run; the rest are
    added alongside it.
    """
    target = rewrite_target(key)
    name = config_name(target)
    for i, url in enumerate(original_urls(key)):
        git.set_config(name, url, replace=(i == 0))
    logger.info("Rewrote %s URLs to %s", key.repo_path, target)
    return MappedHost(mapped_host=key.mapped_host, mapped_uri=target)


def remove_rewrites(git: GitConfigStore, mapped_uri: str) -> None:
    """Unset the whole multi-valued insteadOf key for one alias target."""
    git.rm_config(config_name(mapped_uri))
