"""
Model catalog for chatstream.
"""

import logging
from typing import List, Optional

from pydantic import ValidationError

from .exceptions import CatalogFetchFailure, ChatStreamError
from .transport import AsyncTransport
from .types import Model, ModelList

logger = logging.getLogger(__name__)

MODELS_PATH = "/models"


class ModelCatalog:
    """Lists the models the proxy serves to a given credential."""

    def __init__(self, transport: AsyncTransport) -> None:
        self.transport = transport

    async def list_models(
        self,
        credential: str,
        user_id: Optional[str] = None,
        role: Optional[str] = None,
    ) -> List[Model]:
        """
        List available models.

        Args:
            credential: Bearer credential for the proxy
            user_id: Requesting user, for logging
            role: Requesting user's role, for logging

        Returns:
            Models in the order the proxy returned them

        Raises:
            CatalogFetchFailure: The list could not be fetched or decoded
        """
        logger.debug(f"Fetching models for user={user_id} role={role}")
        try:
            response = await self.transport.get(MODELS_PATH, api_key=credential)
            models = ModelList.model_validate(response)
        except (ChatStreamError, ValidationError) as e:
            raise CatalogFetchFailure(e) from e
        logger.debug(f"Proxy offers {len(models.data)} models: {models.ids}")
        return models.data
