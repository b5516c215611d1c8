"""Tests for release_tooling.docker.cli and docker.environment."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from release_tooling.docker import DockerCli, output_of
from release_tooling.docker.environment import foreign_platforms, isolated_builder, setup_emulation
from release_tooling.errors import BuildError
from release_tooling.run_context import RunContext


class TestDockerCli:
    def test_runs_docker_with_env_and_stdin(self, tmp_path: Path) -> None:
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0, stdout="", stderr="")
            cli = DockerCli(env={"PATH": "/usr/bin"}, cwd=tmp_path)
            cli.run(["login", "--password-stdin"], input="s3cret")
        args, kwargs = mock_run.call_args
        assert args[0] == ["docker", "login", "--password-stdin"]
        assert kwargs["input"] == "s3cret"
        assert kwargs["env"] == {"PATH": "/usr/bin"}
        assert kwargs["cwd"] == str(tmp_path)
        assert kwargs["text"] is True

    def test_with_config_sets_docker_config(self, tmp_path: Path) -> None:
        base = DockerCli(env={"PATH": "/usr/bin"})
        scoped = base.with_config(tmp_path)
        assert scoped.env["DOCKER_CONFIG"] == str(tmp_path)
        assert "DOCKER_CONFIG" not in base.env

    def test_dry_run_never_executes(self, capsys) -> None:
        with patch("subprocess.run") as mock_run:
            r = DockerCli(env={}, dry_run=True).run(["push", "img:1"])
        mock_run.assert_not_called()
        assert r.returncode == 0
        assert "[dry-run] would: docker push img:1" in capsys.readouterr().out

    def test_output_of_joins_streams(self) -> None:
        r = subprocess.CompletedProcess([], 1, stdout="out\n", stderr="err")
        assert output_of(r) == "out\nerr"


class TestEnvironment:
    def test_foreign_platforms(self) -> None:
        assert foreign_platforms(["linux/amd64", "linux/arm64"], native="linux/amd64") == [
            "linux/arm64"
        ]

    def test_emulation_installs_foreign_archs(self, fake_docker) -> None:
        setup_emulation(["linux/amd64", "linux/arm64", "linux/arm/v7"], fake_docker, "linux/amd64")
        assert fake_docker.calls == [
            ["run", "--privileged", "--rm", "tonistiigi/binfmt", "--install", "arm,arm64"]
        ]

    def test_emulation_failure_is_build_error(self, fake_docker) -> None:
        fake_docker.fail_when(lambda a: a[0] == "run")
        with pytest.raises(BuildError):
            setup_emulation(["linux/arm64"], fake_docker, "linux/amd64")

    def test_builder_removed_even_on_error(self, fake_docker, tmp_path: Path) -> None:
        with RunContext.open(tmp_path) as run:
            with pytest.raises(RuntimeError):
                with isolated_builder(run, ["linux/amd64"], fake_docker, "linux/amd64") as name:
                    assert name == run.builder_name
                    raise RuntimeError("inner")
        create, rm = fake_docker.calls
        assert create[:2] == ["buildx", "create"]
        assert "docker-container" in create
        assert rm == ["buildx", "rm", run.builder_name]

    def test_builder_create_failure(self, fake_docker, tmp_path: Path) -> None:
        fake_docker.fail_when(lambda a: a[:2] == ["buildx", "create"])
        with RunContext.open(tmp_path) as run:
            with pytest.raises(BuildError):
                with isolated_builder(run, ["linux/amd64"], fake_docker, "linux/amd64"):
                    pass
        assert fake_docker.commands("buildx", "rm") == []


class TestRunContext:
    def test_workspace_is_removed(self, tmp_path: Path) -> None:
        with RunContext.open(tmp_path) as run:
            assert run.docker_config.is_dir()
            assert (run.docker_config.stat().st_mode & 0o777) == 0o700
            root = run.root
        assert not root.exists()

    def test_builder_and_paths_are_run_scoped(self, tmp_path: Path) -> None:
        with RunContext.open(tmp_path) as a, RunContext.open(tmp_path) as b:
            assert a.builder_name != b.builder_name
            assert a.root != b.root
            assert a.root.name.startswith(f"{a.builder_name}-")
            assert a.artifact_dir("linux/arm/v7") == a.artifact_root / "linux" / "arm" / "v7"
            assert a.metadata_file("dockerhub").parent == a.root
