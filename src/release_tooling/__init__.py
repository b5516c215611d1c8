"""Release tooling: resolve image tags from a git ref, build once, push to every registry."""

__version__ = "0.1.0"
