"""Pipeline error taxonomy. Every error is fatal to the run; CLI entry points map them to exit code 1."""

from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """Base for all fatal release pipeline errors."""

    exit_code = 1


class ConfigurationError(PipelineError):
    """Unresolvable ref, missing secret, or invalid config. Raised before any build."""


class AuthenticationError(PipelineError):
    """One or more registry logins failed. Raised before any push."""

    def __init__(self, message: str, failed: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.failed = dict(failed or {})


class BuildError(PipelineError):
    """Compile/link failure inside the isolated builder."""

    def __init__(self, message: str, output: str = "", platform: str | None = None) -> None:
        super().__init__(message)
        self.output = output
        self.platform = platform


class AssemblyError(PipelineError):
    """Artifact missing or not executable, or runtime image build failed."""


class PushError(PipelineError):
    """Push to at least one target failed, or targets disagree on the image digest.

    Pushes already completed to other targets are not rolled back; they are kept in results.
    """

    def __init__(self, message: str, results: list[Any] | None = None) -> None:
        super().__init__(message)
        self.results = list(results or [])
