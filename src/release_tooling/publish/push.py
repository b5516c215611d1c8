"""Push the run's image to every target under every tag.

One task per target, joined at the end; each reports its own digest or error. A target
receives exactly its TagSet references, pushed straight from the run's builder (one
manifest list covering all platforms when there are several). A failed target does not
undo pushes already completed elsewhere.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from release_tooling.config import PipelineConfig, RegistryTarget
from release_tooling.docker.assemble import Image
from release_tooling.docker.cli import DockerCli, output_of
from release_tooling.errors import ConfigurationError
from release_tooling.helpers import find_digest, is_valid_tag, unique
from release_tooling.run_context import RunContext

log = logging.getLogger(__name__)

DIGEST_KEY = "containerimage.digest"


@dataclass
class PushResult:
    target: RegistryTarget
    references: list[str]
    digests: dict[str, str | None] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def digest(self) -> str | None:
        found = set(self.digests.values())
        return found.pop() if len(found) == 1 else None


def image_references(
    config: PipelineConfig, tags: Sequence[str]
) -> dict[str, list[str]]:
    """target name -> full references, one per tag. Identical tag strings collapse to one push."""
    if not tags:
        msg = "No image tags resolved for this ref; refusing to publish an untagged image"
        raise ConfigurationError(msg)
    bad = [t for t in tags if not is_valid_tag(t)]
    if bad:
        msg = f"Invalid image tag(s): {', '.join(bad)}"
        raise ConfigurationError(msg)
    return {
        t.name: [t.reference(config.image_name, tag) for tag in unique(tags)]
        for t in config.registries
    }


def read_pushed_digest(metadata_file: Path | None) -> str | None:
    """containerimage.digest from a buildx --metadata-file, or None when absent."""
    if metadata_file is None or not metadata_file.is_file():
        return None
    try:
        data = json.loads(metadata_file.read_text() or "{}")
    except json.JSONDecodeError as e:
        log.warning("Unreadable buildx metadata %s: %s", metadata_file, e)
        return None
    return data.get(DIGEST_KEY) if isinstance(data, dict) else None


def push_target(
    image: Image,
    target: RegistryTarget,
    references: Sequence[str],
    docker: DockerCli,
    metadata_file: Path | None = None,
) -> PushResult:
    """Push image under every reference at one target. Errors are captured in the result."""
    result = PushResult(target=target, references=list(references))
    options = [x for ref in references for x in ("--tag", ref)]
    if metadata_file is not None:
        options += ["--metadata-file", str(metadata_file)]
    r = docker.run(image.command(*options, "--push"))
    if r.returncode != 0:
        result.error = f"push to {target.server} failed: {output_of(r)}"
        return result
    digest = read_pushed_digest(metadata_file) or find_digest(output_of(r))
    result.digests = {ref: digest for ref in references}
    return result


def push_all(
    image: Image,
    references: Mapping[str, Sequence[str]],
    targets: Sequence[RegistryTarget],
    docker: DockerCli,
    run: RunContext | None = None,
) -> list[PushResult]:
    """Push to all targets in parallel; results in targets order."""
    by_name: dict[str, PushResult] = {}
    with ThreadPoolExecutor(max_workers=max(1, len(targets))) as executor:
        futures = {
            executor.submit(
                push_target,
                image,
                t,
                references[t.name],
                docker,
                run.metadata_file(t.name) if run else None,
            ): t
            for t in targets
        }
        print("📤 Pushing images...")
        for future in as_completed(futures):
            result = future.result()
            by_name[result.target.name] = result
            if result.ok:
                for ref in result.references:
                    print(f"  ✅ {ref}")
            else:
                print(f"  ❌ {result.target.name}: {result.error}", file=sys.stderr)
    return [by_name[t.name] for t in targets]
