"""The source-control reference that triggered a run (branch push or tag push)."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from release_tooling.errors import ConfigurationError

HEADS_PREFIX = "refs/heads/"
TAGS_PREFIX = "refs/tags/"


class RefKind(str, Enum):
    BRANCH = "branch"
    TAG = "tag"


@dataclass(frozen=True)
class SourceRef:
    kind: RefKind
    value: str
    sha: str | None = None
    repository: str | None = None
    server_url: str = "https://github.com"

    @property
    def is_branch(self) -> bool:
        return self.kind is RefKind.BRANCH

    @property
    def is_tag(self) -> bool:
        return self.kind is RefKind.TAG

    @property
    def full_ref(self) -> str:
        return (HEADS_PREFIX if self.is_branch else TAGS_PREFIX) + self.value

    @property
    def repository_url(self) -> str | None:
        if not self.repository:
            return None
        return f"{self.server_url.rstrip('/')}/{self.repository}"


def parse_ref(
    ref: str,
    sha: str | None = None,
    repository: str | None = None,
    server_url: str = "https://github.com",
) -> SourceRef:
    """Parse refs/heads/<branch> or refs/tags/<tag>. Anything else is a ConfigurationError."""
    if ref.startswith(HEADS_PREFIX) and len(ref) > len(HEADS_PREFIX):
        kind, value = RefKind.BRANCH, ref[len(HEADS_PREFIX) :]
    elif ref.startswith(TAGS_PREFIX) and len(ref) > len(TAGS_PREFIX):
        kind, value = RefKind.TAG, ref[len(TAGS_PREFIX) :]
    else:
        msg = f"Unrecognized ref {ref!r}: expected refs/heads/<branch> or refs/tags/<tag>"
        raise ConfigurationError(msg)
    return SourceRef(kind, value, sha=sha or None, repository=repository or None, server_url=server_url)


def source_ref_from_env(env: Mapping[str, str] | None = None) -> SourceRef:
    """Build a SourceRef from GitHub Actions variables (GITHUB_REF, or GITHUB_REF_TYPE + GITHUB_REF_NAME)."""
    env = os.environ if env is None else env
    sha = env.get("GITHUB_SHA")
    repository = env.get("GITHUB_REPOSITORY")
    server_url = env.get("GITHUB_SERVER_URL") or "https://github.com"

    ref = env.get("GITHUB_REF", "")
    if ref:
        return parse_ref(ref, sha=sha, repository=repository, server_url=server_url)

    ref_type = env.get("GITHUB_REF_TYPE", "")
    ref_name = env.get("GITHUB_REF_NAME", "")
    if ref_type in (RefKind.BRANCH.value, RefKind.TAG.value) and ref_name:
        return SourceRef(
            RefKind(ref_type), ref_name, sha=sha or None, repository=repository or None, server_url=server_url
        )

    msg = "No source ref: pass --ref or set GITHUB_REF (or GITHUB_REF_TYPE and GITHUB_REF_NAME)"
    raise ConfigurationError(msg)
