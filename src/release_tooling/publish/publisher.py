"""Publisher: resolve -> build -> assemble -> login -> push, with every failure fatal to the run.

Phase order:
1. Resolve tags/labels (pure). No tags -> ConfigurationError before anything else.
2. Validate references and secrets -> ConfigurationError, still with no side effects.
3. Set up emulation and an isolated buildx builder, build every platform, assemble
   into the builder cache. A build or assembly failure aborts before any login or push.
4. Log in to every target. Any failure aborts before any push.
5. Push to every target in parallel from the same builder; the run succeeds only if
   every target received every tag and all (tag, target) pairs report one known digest.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from release_tooling.build.builder import build_all
from release_tooling.ci.metadata import ImageMetadata, resolve_metadata
from release_tooling.ci.source_ref import SourceRef
from release_tooling.config import PipelineConfig
from release_tooling.docker.assemble import assemble_image
from release_tooling.docker.cli import DockerCli
from release_tooling.docker.environment import isolated_builder
from release_tooling.errors import ConfigurationError, PushError
from release_tooling.publish.push import PushResult, image_references, push_all
from release_tooling.registry.auth import Authenticator, check_secrets
from release_tooling.run_context import RunContext

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishResult:
    metadata: ImageMetadata
    results: list[PushResult]

    @property
    def digest(self) -> str | None:
        digests = {r.digest for r in self.results if r.digest}
        return digests.pop() if len(digests) == 1 else None

    @property
    def references(self) -> list[str]:
        return [ref for r in self.results for ref in r.references]


def check_consistency(results: list[PushResult], require_digest: bool = True) -> None:
    """PushError unless every target succeeded and reported one identical, known digest.

    require_digest is off only for dry runs, where nothing is pushed and no digest exists.
    """
    failed = [r for r in results if not r.ok]
    if failed:
        done = [r.target.name for r in results if r.ok]
        names = ", ".join(r.target.name for r in failed)
        msg = f"Push failed for: {names}"
        if done:
            msg += f" (already pushed, not rolled back: {', '.join(done)})"
        raise PushError(msg, results=results)

    if require_digest:
        unknown = [ref for r in results for ref, d in r.digests.items() if not d]
        if unknown:
            msg = f"No digest reported for: {', '.join(unknown)}"
            raise PushError(msg, results=results)

    digests = {d for r in results for d in r.digests.values() if d}
    if len(digests) > 1:
        pairs = ", ".join(f"{ref}={d}" for r in results for ref, d in r.digests.items())
        msg = f"Image digest differs across targets: {pairs}"
        raise PushError(msg, results=results)


class Publisher:
    def __init__(
        self,
        config: PipelineConfig,
        docker: DockerCli | None = None,
        env: Mapping[str, str] | None = None,
        work_dir: Path | None = None,
        clock: Callable[[], datetime] | None = None,
        native_platform: str | None = None,
    ) -> None:
        self.config = config
        self.docker = docker or DockerCli()
        self.env = os.environ if env is None else env
        self.work_dir = work_dir
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.native_platform = native_platform

    def plan(
        self, ref: SourceRef, now: datetime | None = None
    ) -> tuple[ImageMetadata, dict[str, list[str]]]:
        """Resolve metadata and references without side effects. Raises ConfigurationError."""
        metadata = resolve_metadata(ref, self.config, now=now or self.clock())
        if not metadata.tags:
            msg = f"Ref {ref.full_ref} matches no tagging rule; nothing to publish"
            raise ConfigurationError(msg)
        return metadata, image_references(self.config, metadata.tags)

    def publish(self, ref: SourceRef) -> PublishResult:
        now = self.clock()
        metadata, references = self.plan(ref, now=now)
        if not self.docker.dry_run:
            check_secrets(self.config.registries, self.env)
        log.info("Publishing %s for %s", ", ".join(metadata.tags), ref.full_ref)

        with RunContext.open(self.work_dir) as run:
            docker = self.docker.with_config(run.docker_config)
            with isolated_builder(run, self.config.platforms, docker, self.native_platform) as builder:
                artifacts = build_all(self.config, run, docker, builder=builder)
                image = assemble_image(
                    artifacts,
                    metadata.labels,
                    self.config,
                    run,
                    docker,
                    builder=builder,
                    source_date_epoch=int(now.timestamp()),
                )
                Authenticator(docker, self.env).login_all(self.config.registries)
                results = push_all(image, references, self.config.registries, docker, run=run)

        check_consistency(results, require_digest=not self.docker.dry_run)
        return PublishResult(metadata=metadata, results=results)
