"""Builder stage: strategies (cargo install / cargo build) and per-platform artifact builds."""

from .strategies import STRATEGIES, BuildStrategy, get_strategy, render_builder_dockerfile

__all__ = [
    "STRATEGIES",
    "BuildStrategy",
    "get_strategy",
    "render_builder_dockerfile",
]
