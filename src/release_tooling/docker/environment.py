"""Build environment setup: QEMU emulation for foreign platforms and a run-scoped buildx builder."""

from __future__ import annotations

import logging
import platform as host_platform
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from release_tooling.docker.cli import DockerCli, output_of
from release_tooling.errors import BuildError
from release_tooling.helpers import HOST_ARCH_PLATFORMS, split_platform
from release_tooling.run_context import RunContext

log = logging.getLogger(__name__)

BINFMT_IMAGE = "tonistiigi/binfmt"
BUILDKIT_DRIVER = "docker-container"


def host_platform_name() -> str:
    """Docker platform of the machine we run on (linux/amd64 when unknown)."""
    return HOST_ARCH_PLATFORMS.get(host_platform.machine().lower(), "linux/amd64")


def foreign_platforms(platforms: Sequence[str], native: str | None = None) -> list[str]:
    native = native or host_platform_name()
    return [p for p in platforms if p != native]


def setup_emulation(platforms: Sequence[str], docker: DockerCli, native: str | None = None) -> None:
    """Register QEMU binfmt handlers for every non-native platform. No-op when all are native."""
    foreign = foreign_platforms(platforms, native)
    if not foreign:
        return
    archs = sorted({split_platform(p)[1] for p in foreign})
    print(f"🔧 Setting up QEMU emulation for: {', '.join(archs)}")
    r = docker.run(
        ["run", "--privileged", "--rm", BINFMT_IMAGE, "--install", ",".join(archs)]
    )
    if r.returncode != 0:
        msg = f"QEMU emulation setup failed for {', '.join(archs)}"
        raise BuildError(msg, output=output_of(r))


@contextmanager
def isolated_builder(
    run: RunContext,
    platforms: Sequence[str],
    docker: DockerCli,
    native: str | None = None,
) -> Iterator[str]:
    """Create a buildx builder named after the run, yield its name, remove it afterwards."""
    setup_emulation(platforms, docker, native)
    name = run.builder_name
    r = docker.run(
        [
            "buildx",
            "create",
            "--name",
            name,
            "--driver",
            BUILDKIT_DRIVER,
            "--platform",
            ",".join(platforms),
            "--bootstrap",
        ]
    )
    if r.returncode != 0:
        msg = f"Could not create buildx builder {name}"
        raise BuildError(msg, output=output_of(r))
    log.debug("Created buildx builder %s", name)
    try:
        yield name
    finally:
        rm = docker.run(["buildx", "rm", name])
        if rm.returncode != 0:
            print(f"⚠️  Could not remove buildx builder {name}", file=sys.stderr)
