from .oidc_config_client import OidcConfigClient
from .scheduler import AsyncioScheduler, Scheduler

__all__ = ["OidcConfigClient", "Scheduler", "AsyncioScheduler"]
