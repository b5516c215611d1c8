"""Builder stage: compile the source tree once per platform and export the single executable.

Each platform builds in the run's isolated buildx builder (cross-platform through QEMU
emulation) and writes only its artifact to run/artifacts/<os>/<arch>/<binary>. Platforms share
no state and build in parallel; any failure fails the run with the builder's output.
"""

from __future__ import annotations

import logging
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from release_tooling.build.strategies import ARTIFACT_STAGE, get_strategy, render_builder_dockerfile
from release_tooling.docker.cli import DockerCli, output_of
from release_tooling.errors import BuildError
from release_tooling.helpers import sha256_file
from release_tooling.run_context import RunContext

if TYPE_CHECKING:
    from release_tooling.config import PipelineConfig

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildArtifact:
    platform: str
    path: Path
    sha256: str | None


def build_artifact(
    config: PipelineConfig,
    platform: str,
    run: RunContext,
    docker: DockerCli,
    builder: str | None = None,
) -> BuildArtifact:
    """Build one platform. Raises BuildError on a non-zero builder exit."""
    strategy = get_strategy(config.strategy)

    if not config.context.is_dir():
        msg = f"Source tree not found: {config.context}"
        raise BuildError(msg, platform=platform)

    dockerfile = run.dockerfile("builder", platform)
    dockerfile.write_text(
        render_builder_dockerfile(strategy, config.builder_image, config.binary_name)
    )
    dest = run.artifact_dir(platform)
    dest.mkdir(parents=True, exist_ok=True)

    args = ["buildx", "build"]
    if builder:
        args += ["--builder", builder]
    args += [
        "--platform",
        platform,
        "--target",
        ARTIFACT_STAGE,
        "--output",
        f"type=local,dest={dest}",
        "--file",
        str(dockerfile),
        str(config.context),
    ]
    print(f"🔨 Building {config.binary_name} for {platform} ({strategy.name})...")
    r = docker.run(args)
    if r.returncode != 0:
        out = output_of(r)
        msg = f"Build failed for {platform} (exit {r.returncode})"
        raise BuildError(msg, output=out, platform=platform)

    path = dest / config.binary_name
    digest = sha256_file(path) if path.is_file() else None
    if digest:
        (dest / f"{config.binary_name}.sha256").write_text(digest)
    log.debug("Artifact for %s: %s sha256=%s", platform, path, digest)
    print(f"  ✅ Built: {platform}")
    return BuildArtifact(platform=platform, path=path, sha256=digest)


def build_all(
    config: PipelineConfig,
    run: RunContext,
    docker: DockerCli,
    builder: str | None = None,
) -> list[BuildArtifact]:
    """Build every configured platform in parallel. Returns artifacts in config.platforms order."""
    results: dict[str, BuildArtifact] = {}
    errors: list[BuildError] = []
    with ThreadPoolExecutor(max_workers=len(config.platforms)) as executor:
        futures = {
            executor.submit(build_artifact, config, p, run, docker, builder): p
            for p in config.platforms
        }
        for future in as_completed(futures):
            platform = futures[future]
            try:
                results[platform] = future.result()
            except BuildError as e:
                print(f"❌ {e}", file=sys.stderr)
                if e.output:
                    print(e.output, file=sys.stderr)
                errors.append(e)

    if errors:
        if len(errors) == 1:
            raise errors[0]
        failed = ", ".join(sorted(e.platform or "?" for e in errors))
        msg = f"Build failed for platforms: {failed}"
        raise BuildError(msg, output="\n\n".join(e.output for e in errors if e.output))
    return [results[p] for p in config.platforms]
