"""OIDC group to role mapping administration service."""

__version__ = "1.0.0"
