"""Exit 0 when the ref should trigger a release (protected branch push or vX.Y.Z tag), else 1."""

from __future__ import annotations

import sys
from collections.abc import Sequence

from release_tooling.ci.metadata import is_release_ref
from release_tooling.ci.source_ref import SourceRef


def run(ref: SourceRef, protected_branches: Sequence[str]) -> int:
    if is_release_ref(ref, protected_branches):
        print(f"{ref.full_ref} triggers a release")
        return 0
    print(f"{ref.full_ref} does not trigger a release", file=sys.stderr)
    return 1
