"""Thin wrapper around the docker CLI (subprocess), scoped to one DOCKER_CONFIG."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping
from pathlib import Path

log = logging.getLogger(__name__)


class DockerCli:
    """Runs `docker <args>` with a fixed environment.

    Secrets must be passed via `input` (stdin), never in args: args are logged and,
    in dry-run mode, printed.
    """

    def __init__(
        self,
        executable: str = "docker",
        env: Mapping[str, str] | None = None,
        cwd: Path | None = None,
        dry_run: bool = False,
    ) -> None:
        self.executable = executable
        self.env = dict(os.environ if env is None else env)
        self.cwd = cwd
        self.dry_run = dry_run

    def with_config(self, config_dir: Path) -> DockerCli:
        """Copy of this CLI whose logins and buildx builders live in config_dir."""
        env = dict(self.env)
        env["DOCKER_CONFIG"] = str(config_dir)
        return DockerCli(self.executable, env=env, cwd=self.cwd, dry_run=self.dry_run)

    def run(
        self,
        args: list[str],
        *,
        input: str | None = None,
        capture: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        cmd = [self.executable, *args]
        if self.dry_run:
            print(f"[dry-run] would: {' '.join(cmd)}")
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")
        log.debug("Running: %s", " ".join(cmd))
        r = subprocess.run(
            cmd,
            input=input,
            capture_output=capture,
            text=True,
            env=self.env,
            cwd=str(self.cwd) if self.cwd else None,
        )
        log.debug("Exit %s: %s", r.returncode, " ".join(cmd))
        return r


def output_of(result: subprocess.CompletedProcess[str]) -> str:
    """Combined stdout+stderr, for error messages and digest parsing."""
    return "\n".join(s for s in (result.stdout, result.stderr) if s).strip()
