"""Registry authentication (docker login per target, run-scoped credentials)."""

from .auth import Authenticator, RegistrySession, check_secrets

__all__ = ["Authenticator", "RegistrySession", "check_secrets"]
