"""Registry authenticator: `docker login` against every target, independently.

Secrets are read from the environment variable each target names, handed to docker on
stdin (--password-stdin), and stored only in the run-scoped DOCKER_CONFIG that is deleted
when the run ends. A failure on any target fails authentication as a whole; the caller
must not push anywhere in that case.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from release_tooling.config import RegistryTarget
from release_tooling.docker.cli import DockerCli, output_of
from release_tooling.errors import AuthenticationError, ConfigurationError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrySession:
    target: RegistryTarget
    server: str


def check_secrets(targets: Sequence[RegistryTarget], env: Mapping[str, str]) -> None:
    """ConfigurationError naming every target whose secret variable is unset or empty."""
    missing = [f"{t.name} ({t.secret_env})" for t in targets if not env.get(t.secret_env)]
    if missing:
        msg = f"Missing registry secret for: {', '.join(missing)}"
        raise ConfigurationError(msg)


def _redact(text: str, secret: str) -> str:
    return text.replace(secret, "***") if secret else text


class Authenticator:
    def __init__(self, docker: DockerCli, env: Mapping[str, str]) -> None:
        self.docker = docker
        self.env = env

    def login(self, target: RegistryTarget) -> RegistrySession:
        """Log in to one target. Raises AuthenticationError for that target only."""
        secret = self.env.get(target.secret_env, "")
        if not secret and not self.docker.dry_run:
            msg = f"{target.name}: secret {target.secret_env} is not set"
            raise AuthenticationError(msg, failed={target.name: "missing secret"})

        args = ["login"]
        if target.host:
            args.append(target.host)
        args += ["--username", target.username, "--password-stdin"]
        log.debug("Logging in to %s as %s", target.server, target.username)
        r = self.docker.run(args, input=secret)
        if r.returncode != 0:
            reason = _redact(output_of(r), secret) or f"docker login exited {r.returncode}"
            msg = f"{target.name}: login to {target.server} failed: {reason}"
            raise AuthenticationError(msg, failed={target.name: reason})
        return RegistrySession(target=target, server=target.server)

    def login_all(self, targets: Sequence[RegistryTarget]) -> dict[str, RegistrySession]:
        """Log in to every target in parallel. All must succeed, else AuthenticationError."""
        sessions: dict[str, RegistrySession] = {}
        failed: dict[str, str] = {}
        with ThreadPoolExecutor(max_workers=max(1, len(targets))) as executor:
            futures = {executor.submit(self.login, t): t for t in targets}
            for future in as_completed(futures):
                target = futures[future]
                try:
                    sessions[target.name] = future.result()
                    print(f"🔑 Logged in: {target.name} ({target.server})")
                except AuthenticationError as e:
                    print(f"❌ {e}", file=sys.stderr)
                    failed.update(e.failed)

        if failed:
            names = ", ".join(sorted(failed))
            msg = f"Authentication failed for: {names}"
            raise AuthenticationError(msg, failed=failed)
        return sessions
