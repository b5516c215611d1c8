"""Print the tags, image references and labels a ref would publish; export them to $GITHUB_OUTPUT."""

from __future__ import annotations

import sys
from collections.abc import Mapping
from datetime import datetime

from release_tooling.ci.source_ref import SourceRef
from release_tooling.config import PipelineConfig
from release_tooling.errors import PipelineError
from release_tooling.helpers import write_github_output
from release_tooling.publish.publisher import Publisher


def run(
    config: PipelineConfig,
    ref: SourceRef,
    env: Mapping[str, str],
    now: datetime | None = None,
) -> int:
    """Resolve and print the publish plan. Returns 0, or 1 when the ref yields nothing to publish."""
    publisher = Publisher(config, env=env, clock=(lambda: now) if now else None)
    try:
        metadata, references = publisher.plan(ref)
    except PipelineError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    all_refs = [r for refs in references.values() for r in refs]
    print(f"Ref: {ref.full_ref}")
    print("Tags:")
    for tag in metadata.tags:
        print(f"  {tag}")
    print("Images:")
    for r in all_refs:
        print(f"  {r}")
    print("Labels:")
    for k, v in metadata.labels.items():
        print(f"  {k}={v}")

    write_github_output(
        env.get("GITHUB_OUTPUT"),
        {
            "version": metadata.version or "",
            "tags": "\n".join(all_refs),
            "labels": "\n".join(f"{k}={v}" for k, v in metadata.labels.items()),
        },
    )
    return 0
