"""Main CLI entry point for release tooling."""

import sys

from release_tooling.cli import ci_cmd, docker_cmd, publish_cmd


def main() -> None:
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print("Usage: release-tooling <command> [args...]", file=sys.stderr)
        print("Commands:", file=sys.stderr)
        print(
            "  plan                  - Show tags, image references and labels for a ref",
            file=sys.stderr,
        )
        print(
            "  publish               - Build, log in to every registry, push every tag",
            file=sys.stderr,
        )
        print(
            "  ci <cmd> ...          - is-release-ref, tags",
            file=sys.stderr,
        )
        print(
            "  docker <cmd> ...      - generate-dockerfile, strategies",
            file=sys.stderr,
        )
        sys.exit(1)

    command = sys.argv[1]

    if command == "plan":
        publish_cmd.run_plan_argv()
    elif command == "publish":
        publish_cmd.run_publish_argv()
    elif command == "ci":
        ci_cmd.run_ci_argv()
    elif command == "docker":
        docker_cmd.run_docker_argv()
    else:
        print(f"Error: Unknown command: {command}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
