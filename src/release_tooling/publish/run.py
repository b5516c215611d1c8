"""CLI entry for a full publish run. Every PipelineError maps to exit code 1."""

from __future__ import annotations

import sys
from collections.abc import Mapping

from release_tooling.ci.source_ref import SourceRef
from release_tooling.config import PipelineConfig
from release_tooling.docker.cli import DockerCli
from release_tooling.errors import PipelineError, PushError
from release_tooling.helpers import write_github_output
from release_tooling.publish.publisher import Publisher


def run(
    config: PipelineConfig,
    ref: SourceRef,
    env: Mapping[str, str],
    dry_run: bool = False,
) -> int:
    """Publish ref. Returns 0 only when every target has every tag at one digest."""
    docker = DockerCli(env=env, cwd=config.context, dry_run=dry_run)
    publisher = Publisher(config, docker=docker, env=env)
    try:
        result = publisher.publish(ref)
    except PushError as e:
        print(f"❌ {e}", file=sys.stderr)
        for r in e.results:
            state = "ok" if r.ok else f"failed: {r.error}"
            print(f"   {r.target.name}: {state}", file=sys.stderr)
        return e.exit_code
    except PipelineError as e:
        print(f"❌ {e}", file=sys.stderr)
        return e.exit_code

    if dry_run:
        print("Info:  Dry run; nothing was built or pushed.")
        return 0

    digest = result.digest or "unknown"
    print(f"🎉 Published {len(result.references)} reference(s) at {digest}")
    write_github_output(
        env.get("GITHUB_OUTPUT"),
        {"digest": digest, "tags": "\n".join(result.references)},
    )
    return 0
