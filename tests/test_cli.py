"""Tests for CLI entry points: main dispatch, ci, docker, plan and publish."""

import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from release_tooling.ci import parse_ref
from release_tooling.cli.ci_cmd import run_ci_argv
from release_tooling.cli.docker_cmd import run_docker_argv
from release_tooling.cli.main import main
from release_tooling.cli.parse_common import parse_flags, resolve_source_ref
from release_tooling.cli.publish_cmd import run_plan_argv
from release_tooling.config import RegistryTarget
from release_tooling.errors import AuthenticationError, PushError
from release_tooling.publish import PushResult
from release_tooling.publish.plan import run as run_plan
from release_tooling.publish.run import run as run_publish

NOW = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)


class TestMain:
    def test_no_command_prints_usage(self, capsys) -> None:
        with patch.object(sys, "argv", ["release-tooling"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1
        assert "Usage" in capsys.readouterr().err

    def test_unknown_command(self, capsys) -> None:
        with patch.object(sys, "argv", ["release-tooling", "deploy"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1
        assert "Unknown command: deploy" in capsys.readouterr().err


class TestParseFlags:
    def test_defaults_and_rest(self) -> None:
        parsed, rest = parse_flags(
            ["--ref", "refs/heads/main", "extra"],
            ("ref", "--ref", None, None),
            ("out", "--output", "x", None),
        )
        assert parsed == {"ref": "refs/heads/main", "out": "x"}
        assert rest == ["extra"]

    def test_resolve_source_ref_uses_github_env(self) -> None:
        ref = resolve_source_ref("refs/tags/v1.0.0", {"GITHUB_SHA": "abc", "GITHUB_REPOSITORY": "o/r"})
        assert ref.sha == "abc"
        assert ref.repository_url == "https://github.com/o/r"


class TestCiCommand:
    def test_tags(self, capsys) -> None:
        with patch.object(sys, "argv", ["release-tooling", "ci", "tags", "--ref", "refs/tags/v1.4.2"]):
            with pytest.raises(SystemExit) as exc_info:
                run_ci_argv()
        assert exc_info.value.code == 0
        assert capsys.readouterr().out.split() == ["1.4.2", "1.4"]

    def test_tags_none_for_unmatched_tag(self) -> None:
        with patch.object(sys, "argv", ["release-tooling", "ci", "tags", "--ref", "refs/tags/nightly"]):
            with pytest.raises(SystemExit) as exc_info:
                run_ci_argv()
        assert exc_info.value.code == 1

    @pytest.mark.parametrize(
        ("ref", "code"),
        [("refs/heads/main", 0), ("refs/heads/dev", 1), ("refs/tags/v2.0.0", 0)],
    )
    def test_is_release_ref(self, ref: str, code: int) -> None:
        with patch.object(sys, "argv", ["release-tooling", "ci", "is-release-ref", "--ref", ref]):
            with pytest.raises(SystemExit) as exc_info:
                run_ci_argv()
        assert exc_info.value.code == code

    def test_bad_ref(self, capsys) -> None:
        with patch.object(sys, "argv", ["release-tooling", "ci", "tags", "--ref", "main"]):
            with pytest.raises(SystemExit) as exc_info:
                run_ci_argv()
        assert exc_info.value.code == 1
        assert "❌" in capsys.readouterr().err


class TestDockerCommand:
    def test_generate_dockerfile_to_file(self, tmp_path: Path) -> None:
        out = tmp_path / "Dockerfile"
        with pytest.raises(SystemExit) as exc_info:
            run_docker_argv(
                ["generate-dockerfile", "--strategy", "cargo-build", "--binary-name", "srv", "--output", str(out)]
            )
        assert exc_info.value.code == 0
        content = out.read_text()
        assert "COPY --from=builder /usr/src/app/target/release/srv /usr/local/bin/srv" in content

    def test_strategies(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_docker_argv(["strategies"])
        assert exc_info.value.code == 0
        assert "cargo-install-bare" in capsys.readouterr().out

    def test_missing_subcommand(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            run_docker_argv([])
        assert exc_info.value.code == 1


class TestPlan:
    def test_prints_and_writes_github_output(self, config, tmp_path: Path, capsys) -> None:
        gh_out = tmp_path / "github_output"
        ref = parse_ref("refs/tags/v1.4.2")
        assert run_plan(config, ref, {"GITHUB_OUTPUT": str(gh_out)}, now=NOW) == 0
        out = capsys.readouterr().out
        assert "docker.io/alice/htmx-ssh-games:1.4.2" in out
        assert "git.example.com/games/htmx-ssh-games:1.4" in out
        written = gh_out.read_text()
        assert "version=1.4.2\n" in written
        assert "tags<<ghadelimiter_" in written
        assert "org.opencontainers.image.created=2024-05-06T07:08:09.000Z" in written

    def test_unmatched_ref_fails(self, config, capsys) -> None:
        assert run_plan(config, parse_ref("refs/tags/nightly"), {}) == 1
        assert "matches no tagging rule" in capsys.readouterr().err

    def test_plan_argv_with_config_file(self, tmp_path: Path, capsys, monkeypatch) -> None:
        (tmp_path / "release.yaml").write_text(
            "image_name: games\n"
            "registries:\n"
            "  - name: ghcr\n"
            "    host: ghcr.io\n"
            "    username: octo\n"
            "    secret_env: GHCR_TOKEN\n"
        )
        monkeypatch.delenv("GITHUB_OUTPUT", raising=False)
        with pytest.raises(SystemExit) as exc_info:
            run_plan_argv(["--project-root", str(tmp_path), "--ref", "refs/heads/main"])
        assert exc_info.value.code == 0
        assert "ghcr.io/octo/games:main" in capsys.readouterr().out


class TestPublishRun:
    def test_success_writes_digest(self, config, tmp_path: Path, capsys) -> None:
        digest = "sha256:" + "c" * 64
        result = MagicMock(digest=digest, references=["docker.io/alice/htmx-ssh-games:main"])
        gh_out = tmp_path / "github_output"
        with patch("release_tooling.publish.run.Publisher") as mock_publisher:
            mock_publisher.return_value.publish.return_value = result
            rc = run_publish(config, parse_ref("refs/heads/main"), {"GITHUB_OUTPUT": str(gh_out)})
        assert rc == 0
        assert "🎉" in capsys.readouterr().out
        assert f"digest={digest}\n" in gh_out.read_text()

    def test_auth_failure_exit_code(self, config, capsys) -> None:
        with patch("release_tooling.publish.run.Publisher") as mock_publisher:
            mock_publisher.return_value.publish.side_effect = AuthenticationError(
                "Authentication failed for: self-hosted", failed={"self-hosted": "unauthorized"}
            )
            rc = run_publish(config, parse_ref("refs/heads/main"), {})
        assert rc == 1
        assert "self-hosted" in capsys.readouterr().err

    def test_push_failure_reports_each_target(self, config, capsys) -> None:
        hub = RegistryTarget(name="dockerhub", host="", username="alice", secret_env="S")
        forge = RegistryTarget(name="self-hosted", host="h", username="bob", secret_env="T")
        results = [
            PushResult(target=hub, references=["a"]),
            PushResult(target=forge, references=["b"], error="denied"),
        ]
        with patch("release_tooling.publish.run.Publisher") as mock_publisher:
            mock_publisher.return_value.publish.side_effect = PushError("Push failed", results=results)
            rc = run_publish(config, parse_ref("refs/heads/main"), {})
        assert rc == 1
        err = capsys.readouterr().err
        assert "dockerhub: ok" in err
        assert "self-hosted: failed: denied" in err
