"""Docker helpers: CLI wrapper, emulation/builder setup, runtime image assembly, Dockerfile generation."""

from .cli import DockerCli, output_of

__all__ = ["DockerCli", "output_of"]
