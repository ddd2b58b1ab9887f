"""Port interface for the remote OIDC configuration store."""

from abc import ABC, abstractmethod
from typing import Any, Dict

from oidc_admin.domain.models.mapping_models import ConfigSnapshot


class OidcConfigClient(ABC):
    """Client interface for reading, testing and updating the OIDC config."""

    @abstractmethod
    async def fetch_config(self) -> ConfigSnapshot:
        """
        Fetch the full OIDC configuration.

        Returns:
            Configuration snapshot

        Raises:
            OidcApiError: If the remote rejects the request
        """
        pass

    @abstractmethod
    async def test_config(self, candidate: ConfigSnapshot) -> None:
        """
        Validate a candidate configuration without applying it.

        Args:
            candidate: Full configuration to test

        Raises:
            OidcApiError: If the remote reports validation errors
        """
        pass

    @abstractmethod
    async def persist_config(self, partial: Dict[str, Any]) -> None:
        """
        Apply a partial configuration update.

        Args:
            partial: Fields to update

        Raises:
            OidcApiError: If the remote rejects the update
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass
