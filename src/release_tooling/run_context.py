"""Per-run scratch space: build artifacts, generated Dockerfiles, and the run-scoped DOCKER_CONFIG.

Everything here is removed when the run ends, so credentials written by `docker login`
and compiled artifacts never outlive the run.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from release_tooling.helpers import new_run_id, platform_slug

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunContext:
    run_id: str
    root: Path

    @property
    def docker_config(self) -> Path:
        return self.root / "docker-config"

    @property
    def builder_name(self) -> str:
        return f"release-{self.run_id}"

    @property
    def artifact_root(self) -> Path:
        """Build context of the runtime image: holds nothing but the exported executables."""
        return self.root / "artifacts"

    @property
    def runtime_dockerfile(self) -> Path:
        return self.root / "Dockerfile.runtime"

    def artifact_dir(self, platform: str) -> Path:
        """artifacts/<os>/<arch>[/<variant>], the layout ${TARGETPLATFORM} expands to."""
        return self.artifact_root / platform

    def dockerfile(self, kind: str, platform: str) -> Path:
        return self.root / f"Dockerfile.{kind}.{platform_slug(platform)}"

    def metadata_file(self, target_name: str) -> Path:
        """buildx --metadata-file output for one target's push."""
        return self.root / f"push-{target_name}.json"

    @classmethod
    @contextmanager
    def open(cls, base_dir: Path | None = None) -> Iterator[RunContext]:
        run_id = new_run_id()
        root = Path(tempfile.mkdtemp(prefix=f"release-{run_id}-", dir=base_dir))
        ctx = cls(run_id=run_id, root=root)
        ctx.docker_config.mkdir(mode=0o700)
        log.debug("Run %s workspace: %s", run_id, root)
        try:
            yield ctx
        finally:
            shutil.rmtree(root, ignore_errors=True)
