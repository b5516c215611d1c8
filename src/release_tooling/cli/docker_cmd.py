"""`release-tooling docker` subcommands: generate-dockerfile, strategies."""

import sys

from release_tooling.build.strategies import STRATEGIES
from release_tooling.cli.parse_common import parse_flags, path_resolver
from release_tooling.config import DEFAULT_SETTINGS
from release_tooling.docker.generate_dockerfile import run as run_generate_dockerfile


def run_docker_argv(argv: list[str] | None = None) -> None:
    """Parse docker subcommand from argv and run. argv defaults to sys.argv[2:] when called from main."""
    if argv is None:
        argv = sys.argv[2:] if len(sys.argv) > 2 else []
    if not argv:
        print("release-tooling docker: missing subcommand", file=sys.stderr)
        print("  generate-dockerfile, strategies", file=sys.stderr)
        sys.exit(1)
    cmd = argv[0]
    rest = argv[1:]

    if cmd == "generate-dockerfile":
        parsed, _ = parse_flags(
            rest,
            ("strategy", "--strategy", DEFAULT_SETTINGS["strategy"], None),
            ("builder_image", "--builder-image", DEFAULT_SETTINGS["builder_image"], None),
            ("runtime_image", "--runtime-image", DEFAULT_SETTINGS["runtime_image"], None),
            ("binary_name", "--binary-name", DEFAULT_SETTINGS["binary_name"], None),
            ("output", "--output", None, path_resolver),
        )
        rc = run_generate_dockerfile(
            parsed["strategy"],
            parsed["builder_image"],
            parsed["runtime_image"],
            binary_name=parsed["binary_name"],
            output_path=parsed["output"],
        )
        sys.exit(rc)

    if cmd == "strategies":
        for name, s in sorted(STRATEGIES.items()):
            print(f"  {name:<20} {s.description}")
        sys.exit(0)

    print(f"Unknown docker subcommand: {cmd}", file=sys.stderr)
    sys.exit(1)

