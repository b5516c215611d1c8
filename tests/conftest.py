"""Pytest fixtures for release tooling tests."""

from __future__ import annotations

import json
import subprocess
import threading
from collections.abc import Callable
from pathlib import Path

import pytest

from release_tooling.config import PipelineConfig, RegistryTarget

DIGEST_A = "sha256:" + "a" * 64
DIGEST_B = "sha256:" + "b" * 64


class FakeDocker:
    """Stands in for DockerCli: records every call and answers like a healthy docker daemon.

    `fail_when(pred, rc, output)` makes matching calls fail. `buildx build --output type=local`
    drops an executable named binary_name into the dest directory, as the real exporter would.
    `buildx build --push` reports the digest for its first --tag in --metadata-file and on stderr;
    `digest_for` returning None leaves the digest out.
    """

    def __init__(self, binary_name: str = "app", dry_run: bool = False) -> None:
        self.binary_name = binary_name
        self.dry_run = dry_run
        self.calls: list[list[str]] = []
        self.inputs: list[str | None] = []
        self.config_dirs: list[Path] = []
        self.digest_for: Callable[[str], str | None] = lambda ref: DIGEST_A
        self.make_executable = True
        self._rules: list[tuple[Callable[[list[str]], bool], int, str]] = []
        self._lock = threading.Lock()

    def fail_when(self, pred: Callable[[list[str]], bool], rc: int = 1, output: str = "boom") -> None:
        self._rules.append((pred, rc, output))

    def with_config(self, config_dir: Path) -> FakeDocker:
        self.config_dirs.append(config_dir)
        return self

    def commands(self, *prefix: str) -> list[list[str]]:
        with self._lock:
            calls = list(self.calls)
        return [c for c in calls if c[: len(prefix)] == list(prefix)]

    def pushes(self) -> list[list[str]]:
        return [c for c in self.commands("buildx", "build") if "--push" in c]

    def run(self, args: list[str], *, input: str | None = None, capture: bool = True):
        with self._lock:
            self.calls.append(list(args))
            self.inputs.append(input)
        for pred, rc, output in self._rules:
            if pred(args):
                return subprocess.CompletedProcess(args, rc, stdout="", stderr=output)
        if args[:2] == ["buildx", "build"] and "--push" in args:
            digest = self.digest_for(option_values(args, "--tag")[0])
            if "--metadata-file" in args:
                metadata = Path(args[args.index("--metadata-file") + 1])
                metadata.write_text(json.dumps({"containerimage.digest": digest} if digest else {}))
            progress = f"#12 exporting manifest list {digest} done" if digest else ""
            return subprocess.CompletedProcess(args, 0, stdout="", stderr=progress)
        if args[:2] == ["buildx", "build"] and "--output" in args:
            output = args[args.index("--output") + 1]
            if output.startswith("type=local"):
                binary = Path(output.split("dest=", 1)[1]) / self.binary_name
                binary.write_bytes(b"\x7fELF fake")
                binary.chmod(0o755 if self.make_executable else 0o644)
        return subprocess.CompletedProcess(args, 0, stdout="", stderr="")


def option_values(args: list[str], option: str) -> list[str]:
    """Every value given for a repeated option, e.g. all --tag references of one call."""
    return [args[i + 1] for i, a in enumerate(args[:-1]) if a == option]


@pytest.fixture
def fake_docker() -> FakeDocker:
    return FakeDocker()


@pytest.fixture
def targets() -> tuple[RegistryTarget, ...]:
    return (
        RegistryTarget(name="dockerhub", host="", username="alice", secret_env="DOCKERHUB_PUSH_TOKEN"),
        RegistryTarget(
            name="self-hosted",
            host="git.example.com",
            username="bob",
            namespace="games",
            secret_env="REGISTRY_PUSH_TOKEN",
        ),
    )


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    src = tmp_path / "src-tree"
    src.mkdir()
    (src / "Cargo.toml").write_text('[package]\nname = "app"\nversion = "0.1.0"\n')
    return src


@pytest.fixture
def config(targets: tuple[RegistryTarget, ...], source_tree: Path) -> PipelineConfig:
    return PipelineConfig(registries=targets, context=source_tree)


@pytest.fixture
def secrets_env() -> dict[str, str]:
    return {"DOCKERHUB_PUSH_TOKEN": "hub-secret", "REGISTRY_PUSH_TOKEN": "forge-secret"}


@pytest.fixture
def dry_run_docker() -> FakeDocker:
    return FakeDocker(dry_run=True)
