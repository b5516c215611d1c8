"""`release-tooling plan` and `release-tooling publish`."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from release_tooling.cli.parse_common import configure_logging, load_cli_config, resolve_source_ref
from release_tooling.errors import PipelineError
from release_tooling.publish.plan import run as run_plan
from release_tooling.publish.run import run as run_publish


def _parser(prog: str, description: str) -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog=prog, description=description)
    ap.add_argument(
        "--ref",
        default=None,
        help="refs/heads/<branch> or refs/tags/<tag> (default: GITHUB_REF)",
    )
    ap.add_argument("--config", type=Path, default=None, help="release.yaml path")
    ap.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Project root (default: cwd)",
    )
    ap.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return ap


def run_plan_argv(argv: list[str] | None = None) -> None:
    """Parse argv and print the publish plan for a ref."""
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    args = _parser("release-tooling plan", "Show tags, image references and labels for a ref").parse_args(argv)
    configure_logging(args.verbose)
    try:
        config = load_cli_config(args.config, args.project_root)
        ref = resolve_source_ref(args.ref)
    except PipelineError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(e.exit_code)
    sys.exit(run_plan(config, ref, os.environ))


def run_publish_argv(argv: list[str] | None = None) -> None:
    """Parse argv and run the full build-and-push pipeline."""
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    ap = _parser("release-tooling publish", "Build the image and push it to every registry")
    ap.add_argument(
        "--dry-run",
        action="store_true",
        help="Print docker commands without running them",
    )
    args = ap.parse_args(argv)
    configure_logging(args.verbose)
    try:
        config = load_cli_config(args.config, args.project_root)
        ref = resolve_source_ref(args.ref)
    except PipelineError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(e.exit_code)
    sys.exit(run_publish(config, ref, os.environ, dry_run=args.dry_run))
