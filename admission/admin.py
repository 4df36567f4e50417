#!/usr/bin/env python3
"""Administrative weight management."""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import sessionmaker

from core.cache.weight_cache import WeightCacheService
from core.exceptions import ConfigError, NotFoundError
from core.scorer.models import WeightConfig
from database.uow import admission_uow

logger = logging.getLogger(__name__)


class WeightAdminService:
    def __init__(self, session_factory: sessionmaker, weight_cache: WeightCacheService):
        self.session_factory = session_factory
        self.weight_cache = weight_cache

    def list_weights(self) -> List[Dict[str, Any]]:
        with admission_uow(self.session_factory) as repo:
            return repo.weights.list_rows()

    def update_weight(
        self,
        key: str,
        updated_by: Optional[Any] = None,
        weight: Optional[float] = None,
        threshold: Optional[float] = None,
        minimum: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Update one weight row and invalidate the weights cache.

        The cache is invalidated before returning, so the next scoring run
        reads the new values.

        Raises:
            NotFoundError: If no row exists for key
            ConfigError: If the resulting weight is invalid
        """
        changes = {
            name: value
            for name, value in (('weight', weight), ('threshold', threshold), ('minimum', minimum))
            if value is not None
        }
        if not changes:
            raise ConfigError(f"No changes supplied for scoring weight '{key}'")

        with admission_uow(self.session_factory) as repo:
            row = repo.weights.get_by_key(key)
            if row is None:
                raise NotFoundError("Scoring weight", key)

            try:
                WeightConfig.model_validate({**row.to_dict(), **changes})
            except ValidationError as e:
                raise ConfigError(f"Invalid scoring weight '{key}': {e}") from e

            repo.weights.update_weight(row, changes, updated_by=updated_by)
            updated = row.to_dict()

        self.weight_cache.invalidate()
        logger.info(f"Scoring weight '{key}' updated: {changes}")
        return updated
