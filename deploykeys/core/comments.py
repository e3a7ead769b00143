"""Classify agent identities as repository or organization deploy keys.

A deploy key announces its scope through its comment, e.g.
``git@github.com:owner/repo.git`` or ``github.com/owner``. Only the tail of
the comment is inspected, so free-text labels in front are ignored.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from deploykeys.core.keys import PublicKey

logger = logging.getLogger(__name__)

DEFAULT_USER = "git"

_USER_RE = re.compile(r"^(\w+)@")
_OWNER_REPO_RE = re.compile(r"([\w.-]+)[:/]([a-z0-9._-]+/[a-z0-9._-]+)$", re.IGNORECASE)
_OWNER_RE = re.compile(r"([\w.-]+)[:/]([a-z0-9._-]+)$", re.IGNORECASE)


@dataclass(frozen=True)
class DeployKeyMatch(PublicKey):
    """A public key whose comment names the host and repo/org it is scoped to."""

    user: str = DEFAULT_USER
    host: str = ""
    repo_path: str = ""
    is_org_scoped: bool = False


def extract_user(comment: str) -> str:
    m = _USER_RE.match(comment)
    return m.group(1) if m else DEFAULT_USER


def match_repo(comment: str) -> tuple[str, str] | None:
    """Return (host, "owner/repo") for a repository-scoped comment."""
    m = _OWNER_REPO_RE.search(comment)
    if not m:
        return None
    return m.group(1), m.group(2).removesuffix(".git")


def match_org(comment: str) -> tuple[str, str] | None:
    """Return (host, "owner") for an organization-scoped comment."""
    m = _OWNER_RE.search(comment)
    if not m:
        return None
    return m.group(1), m.group(2)


def classify(key: PublicKey) -> DeployKeyMatch | None:
    """Classify a key by its comment; None means it is not a deploy key."""
    user = extract_user(key.comment)

    repo = match_repo(key.comment)
    if repo:
        logger.debug("key comment '%s' matched deploy key repo pattern", key.comment)
        host, repo_path = repo
        return DeployKeyMatch(
            algorithm=key.algorithm,
            material=key.material,
            comment=key.comment,
            user=user,
            host=host,
            repo_path=repo_path,
            is_org_scoped=False,
        )

    org = match_org(key.comment)
    if org:
        logger.debug("key comment '%s' matched deploy key org pattern", key.comment)
        host, owner = org
        return DeployKeyMatch(
            algorithm=key.algorithm,
            material=key.material,
            comment=key.comment,
            user=user,
            host=host,
            repo_path=owner,
            is_org_scoped=True,
        )

    logger.debug("key comment '%s' did not match deploy key pattern", key.comment)
    return None
