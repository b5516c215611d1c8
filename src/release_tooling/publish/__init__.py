"""Publish: orchestrate build, login and push; plan; CLI run helpers."""

from .publisher import PublishResult, Publisher, check_consistency
from .push import PushResult, image_references, push_all, push_target

__all__ = [
    "PublishResult",
    "Publisher",
    "PushResult",
    "check_consistency",
    "image_references",
    "push_all",
    "push_target",
]
