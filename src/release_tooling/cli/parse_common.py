"""Shared CLI argument parsing for common flags (--config, --ref, --project-root, etc.)."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from release_tooling.ci.source_ref import SourceRef, parse_ref, source_ref_from_env
from release_tooling.config import PipelineConfig, load_config


def parse_flags(
    argv: list[str],
    *flags: tuple[str, str, Any, Callable[[str], Any] | None],
) -> tuple[dict[str, Any], list[str]]:
    """Pull `--flag value` pairs out of argv; returns (values by key, positional leftovers).

    A flag is (key, flag, default, converter); a callable default is called per parse.
    """
    result: dict[str, Any] = {}
    for key, _flag, default, _converter in flags:
        result[key] = default() if callable(default) else default

    rest: list[str] = []
    i = 0
    while i < len(argv):
        matched = False
        for key, flag_str, _default, converter in flags:
            if argv[i] == flag_str and i + 1 < len(argv):
                result[key] = converter(argv[i + 1]) if converter else argv[i + 1]
                i += 2
                matched = True
                break
        if not matched:
            rest.append(argv[i])
            i += 1
    return result, rest


def path_resolver(s: str) -> Path:
    """Path flag values (--config, --project-root, --output), made absolute."""
    return Path(s).resolve()


def resolve_source_ref(ref: str | None, env: Mapping[str, str] | None = None) -> SourceRef:
    """--ref when given (GITHUB_SHA/GITHUB_REPOSITORY still apply), else the Actions environment."""
    env = os.environ if env is None else env
    if ref:
        return parse_ref(
            ref,
            sha=env.get("GITHUB_SHA"),
            repository=env.get("GITHUB_REPOSITORY"),
            server_url=env.get("GITHUB_SERVER_URL") or "https://github.com",
        )
    return source_ref_from_env(env)


def load_cli_config(
    config_path: Path | None,
    project_root: Path | None,
    env: Mapping[str, str] | None = None,
) -> PipelineConfig:
    return load_config(path=config_path, env=env, project_root=project_root)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
