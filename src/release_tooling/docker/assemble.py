"""Image assembler: wrap the built artifacts in the minimal runtime image.

The build context is the run's artifact directory alone, so nothing from the builder
filesystem (toolchain, caches, headers) can reach the final layer. The entrypoint is
exec-form: the binary runs directly, without a shell.

The image is built once, for every platform, into the run's own buildx builder and
never loaded into the shared docker daemon. Pushing replays that build from cache with
the registry tags, so no registry reference ever exists as a local tag.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from release_tooling.build.builder import BuildArtifact
from release_tooling.docker.cli import DockerCli, output_of
from release_tooling.errors import AssemblyError
from release_tooling.run_context import RunContext

if TYPE_CHECKING:
    from release_tooling.config import PipelineConfig

log = logging.getLogger(__name__)

RUNTIME_BIN_DIR = "/usr/local/bin"


@dataclass(frozen=True)
class Image:
    """The run's runtime image, held in the run builder's cache.

    source_date_epoch pins every timestamp BuildKit writes, so replaying the build
    yields the same manifests and one digest for every push.
    """

    platforms: tuple[str, ...]
    labels: Mapping[str, str]
    dockerfile: Path
    context: Path
    builder: str | None = None
    source_date_epoch: int | None = None

    @property
    def is_multi_platform(self) -> bool:
        return len(self.platforms) > 1

    def command(self, *options: str) -> list[str]:
        """`buildx build` argv for this image with extra options before the context."""
        args = ["buildx", "build"]
        if self.builder:
            args += ["--builder", self.builder]
        args += ["--platform", ",".join(self.platforms), "--file", str(self.dockerfile)]
        for k, v in self.labels.items():
            args += ["--label", f"{k}={v}"]
        if self.source_date_epoch is not None:
            args += ["--build-arg", f"SOURCE_DATE_EPOCH={self.source_date_epoch}"]
        return [*args, *options, str(self.context)]


def render_runtime_dockerfile(runtime_image: str, binary_name: str) -> str:
    target = f"{RUNTIME_BIN_DIR}/{binary_name}"
    return "\n".join(
        [
            f"FROM {runtime_image}",
            "ARG TARGETPLATFORM",
            f"COPY ${{TARGETPLATFORM}}/{binary_name} {target}",
            f"ENTRYPOINT {json.dumps([binary_name])}",
            "",
        ]
    )


def check_artifact(artifact: BuildArtifact, dry_run: bool = False) -> None:
    """Fatal if the artifact is missing or not executable. Skipped in dry-run (nothing was built)."""
    if dry_run:
        return
    if not artifact.path.is_file():
        msg = f"Artifact not found for {artifact.platform}: {artifact.path}"
        raise AssemblyError(msg)
    if not os.access(artifact.path, os.X_OK):
        msg = f"Artifact is not executable for {artifact.platform}: {artifact.path}"
        raise AssemblyError(msg)


def assemble_image(
    artifacts: Sequence[BuildArtifact],
    labels: Mapping[str, str],
    config: PipelineConfig,
    run: RunContext,
    docker: DockerCli,
    builder: str | None = None,
    source_date_epoch: int | None = None,
) -> Image:
    """Build the runtime image for every artifact's platform. Raises AssemblyError on any failure."""
    if not artifacts:
        msg = "No build artifacts to assemble"
        raise AssemblyError(msg)
    for artifact in artifacts:
        check_artifact(artifact, dry_run=docker.dry_run)

    run.runtime_dockerfile.write_text(
        render_runtime_dockerfile(config.runtime_image, config.binary_name)
    )
    image = Image(
        platforms=tuple(a.platform for a in artifacts),
        labels=labels,
        dockerfile=run.runtime_dockerfile,
        context=run.artifact_root,
        builder=builder,
        source_date_epoch=source_date_epoch,
    )
    print(f"📦 Assembling runtime image for {', '.join(image.platforms)}...")
    r = docker.run(image.command("--output", "type=cacheonly"))
    if r.returncode != 0:
        msg = f"Runtime image build failed for {', '.join(image.platforms)}: {output_of(r)}"
        raise AssemblyError(msg)
    log.debug("Runtime image cached in builder %s", builder or "default")
    print("  ✅ Assembled")
    return image
