"""CLI for ci: release-tooling ci is-release-ref | tags."""

from __future__ import annotations

import sys
from pathlib import Path

from release_tooling.ci.is_release_ref import run as run_is_release_ref
from release_tooling.ci.metadata import resolve_tags
from release_tooling.cli.parse_common import load_cli_config, parse_flags, path_resolver, resolve_source_ref
from release_tooling.config import DEFAULT_SETTINGS
from release_tooling.errors import PipelineError


def run_ci_argv() -> None:
    """Dispatch release-tooling ci <subcommand>."""
    if len(sys.argv) < 3:
        print(
            "Usage: release-tooling ci <subcommand> [options]",
            file=sys.stderr,
        )
        print("Subcommands: is-release-ref, tags", file=sys.stderr)
        sys.exit(1)

    sub = sys.argv[2].lower()
    args = sys.argv[3:]
    parsed, _ = parse_flags(
        args,
        ("ref", "--ref", None, None),
        ("config", "--config", None, path_resolver),
        ("project_root", "--project-root", Path.cwd, path_resolver),
    )

    try:
        ref = resolve_source_ref(parsed["ref"])
    except PipelineError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    if sub == "is-release-ref":
        branches = DEFAULT_SETTINGS["protected_branches"]
        if parsed["config"]:
            try:
                config = load_cli_config(parsed["config"], parsed["project_root"])
            except PipelineError as e:
                print(f"❌ {e}", file=sys.stderr)
                sys.exit(1)
            branches = list(config.protected_branches)
        rc = run_is_release_ref(ref, branches)
        sys.exit(rc)

    if sub == "tags":
        tags = resolve_tags(ref)
        for t in tags:
            print(t)
        sys.exit(0 if tags else 1)

    print(f"Error: Unknown ci subcommand: {sub}", file=sys.stderr)
    sys.exit(1)
