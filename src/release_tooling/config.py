"""Pipeline configuration: registry targets, image name, platforms, build strategy.

Config YAML format (release.yaml, all keys optional):
- image_name: repository name under each namespace (default: htmx-ssh-games)
- platforms: list of os/arch[/variant] (default: [linux/amd64])
- context: source tree to build, relative to the config file's directory
- strategy: cargo-install | cargo-build | cargo-install-bare
- binary_name, builder_image, runtime_image
- protected_branches: branches whose pushes trigger a release (default: [main])
- labels: extra OCI labels (e.g. org.opencontainers.image.licenses)
- registries: list of { name, host, username, namespace, secret_env }

Without a registries key the two default targets are read from the environment:
Docker Hub (DOCKERHUB_USERNAME / DOCKERHUB_PUSH_TOKEN) and a self-hosted registry
(REGISTRY_HOSTNAME / REGISTRY_USERNAME / REGISTRY_PUSH_TOKEN). IMAGE_NAME and
PLATFORMS (comma separated) in the environment override the file.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from release_tooling.build.strategies import STRATEGIES
from release_tooling.errors import ConfigurationError
from release_tooling.helpers import split_platform

CONFIG_FILENAME = "release.yaml"

DEFAULT_SETTINGS: dict[str, Any] = {
    "image_name": "htmx-ssh-games",
    "platforms": ["linux/amd64"],
    "context": ".",
    "strategy": "cargo-install",
    "binary_name": "app",
    "builder_image": "rust:1.81.0-alpine3.20",
    "runtime_image": "alpine:3.20",
    "protected_branches": ["main"],
    "labels": {},
}

DOCKER_HUB = "docker.io"


@dataclass(frozen=True)
class RegistryTarget:
    """One push destination. host == "" is the default public registry (Docker Hub).

    secret_env names the environment variable holding the credential; the value is
    only read at login time and never stored here.
    """

    name: str
    host: str
    username: str
    secret_env: str
    namespace: str = ""

    @property
    def effective_namespace(self) -> str:
        return self.namespace or self.username

    @property
    def server(self) -> str:
        return self.host or DOCKER_HUB

    def repository(self, image_name: str) -> str:
        """<host-or-docker.io>/<namespace>/<image>."""
        return f"{self.server}/{self.effective_namespace}/{image_name}"

    def reference(self, image_name: str, tag: str) -> str:
        return f"{self.repository(image_name)}:{tag}"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable per-run configuration, passed explicitly to Authenticator and Publisher."""

    registries: tuple[RegistryTarget, ...]
    image_name: str = DEFAULT_SETTINGS["image_name"]
    platforms: tuple[str, ...] = ("linux/amd64",)
    context: Path = field(default_factory=Path.cwd)
    strategy: str = DEFAULT_SETTINGS["strategy"]
    binary_name: str = DEFAULT_SETTINGS["binary_name"]
    builder_image: str = DEFAULT_SETTINGS["builder_image"]
    runtime_image: str = DEFAULT_SETTINGS["runtime_image"]
    protected_branches: tuple[str, ...] = ("main",)
    labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def validate(self) -> None:
        """Raise ConfigurationError for anything that would make a push impossible."""
        if not self.image_name:
            msg = "image_name must not be empty"
            raise ConfigurationError(msg)
        if not self.registries:
            msg = "No registry targets configured"
            raise ConfigurationError(msg)
        if not self.platforms:
            msg = "At least one platform is required"
            raise ConfigurationError(msg)
        for p in self.platforms:
            try:
                split_platform(p)
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        if self.strategy not in STRATEGIES:
            known = ", ".join(sorted(STRATEGIES))
            msg = f"Unknown build strategy {self.strategy!r}. Use one of: {known}"
            raise ConfigurationError(msg)
        names = [t.name for t in self.registries]
        if len(set(names)) != len(names):
            msg = f"Registry target names must be unique: {names}"
            raise ConfigurationError(msg)
        for t in self.registries:
            if not t.effective_namespace:
                msg = f"Registry target {t.name!r} has no username/namespace"
                raise ConfigurationError(msg)
            if not t.secret_env:
                msg = f"Registry target {t.name!r} has no secret_env"
                raise ConfigurationError(msg)


def default_registries(env: Mapping[str, str]) -> tuple[RegistryTarget, ...]:
    """Docker Hub plus the self-hosted registry, from GitHub Actions vars exported to env."""
    hub_user = env.get("DOCKERHUB_USERNAME", "")
    host = env.get("REGISTRY_HOSTNAME", "")
    reg_user = env.get("REGISTRY_USERNAME", "")
    if not host:
        msg = "REGISTRY_HOSTNAME is required for the self-hosted registry target"
        raise ConfigurationError(msg)
    targets = [
        RegistryTarget(
            name="dockerhub",
            host="",
            username=hub_user,
            secret_env="DOCKERHUB_PUSH_TOKEN",
        ),
        RegistryTarget(
            name="self-hosted",
            host=host,
            username=reg_user,
            namespace=env.get("REGISTRY_NAMESPACE", ""),
            secret_env="REGISTRY_PUSH_TOKEN",
        ),
    ]
    return tuple(targets)


def _registries_from_yaml(items: Any) -> tuple[RegistryTarget, ...]:
    if not isinstance(items, list):
        msg = "registries must be a list"
        raise ConfigurationError(msg)
    out: list[RegistryTarget] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            msg = f"registries[{i}] must be a mapping"
            raise ConfigurationError(msg)
        out.append(
            RegistryTarget(
                name=str(item.get("name") or item.get("host") or f"registry-{i}"),
                host=str(item.get("host") or ""),
                username=str(item.get("username") or ""),
                namespace=str(item.get("namespace") or ""),
                secret_env=str(item.get("secret_env") or ""),
            )
        )
    return tuple(out)


def _load_yaml(path: Path) -> dict[str, Any]:
    import yaml

    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        msg = f"Could not parse {path}: {e}"
        raise ConfigurationError(msg) from e
    if not isinstance(data, dict):
        msg = f"{path} must contain a mapping"
        raise ConfigurationError(msg)
    return data


def load_config(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
    project_root: Path | None = None,
) -> PipelineConfig:
    """Merge defaults <- YAML file <- environment into a validated PipelineConfig.

    path defaults to project_root/release.yaml when that file exists. Relative context
    paths resolve against the config file's directory (or project_root).
    """
    env = os.environ if env is None else env
    root = (project_root or Path.cwd()).resolve()
    if path is None and (root / CONFIG_FILENAME).is_file():
        path = root / CONFIG_FILENAME

    settings = dict(DEFAULT_SETTINGS)
    base = root
    registries: tuple[RegistryTarget, ...] | None = None
    if path is not None:
        if not path.is_file():
            msg = f"Config file not found: {path}"
            raise ConfigurationError(msg)
        data = _load_yaml(path)
        base = path.resolve().parent
        if "registries" in data:
            registries = _registries_from_yaml(data.pop("registries"))
        unknown = sorted(set(data) - set(settings))
        if unknown:
            msg = f"Unknown config keys in {path}: {', '.join(unknown)}"
            raise ConfigurationError(msg)
        settings.update(data)

    if env.get("IMAGE_NAME"):
        settings["image_name"] = env["IMAGE_NAME"]
    if env.get("PLATFORMS"):
        settings["platforms"] = [p.strip() for p in env["PLATFORMS"].split(",") if p.strip()]

    if registries is None:
        registries = default_registries(env)

    context = Path(str(settings["context"]))
    if not context.is_absolute():
        context = (base / context).resolve()

    config = PipelineConfig(
        registries=registries,
        image_name=str(settings["image_name"]),
        platforms=tuple(str(p) for p in settings["platforms"]),
        context=context,
        strategy=str(settings["strategy"]),
        binary_name=str(settings["binary_name"]),
        builder_image=str(settings["builder_image"]),
        runtime_image=str(settings["runtime_image"]),
        protected_branches=tuple(str(b) for b in settings["protected_branches"]),
        labels=MappingProxyType({str(k): str(v) for k, v in (settings["labels"] or {}).items()}),
    )
    config.validate()
    return config
