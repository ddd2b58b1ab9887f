from .looker_oidc_client import LookerOidcConfigClient

__all__ = ["LookerOidcConfigClient"]
