"""Food group lookup against USDA FoodData Central."""

from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from .config import HTTP_TIMEOUT_SECONDS, USDA_API_KEY

logger = logging.getLogger(__name__)

USDA_SEARCH_URL = "https://api.nal.usda.gov/fdc/v1/foods/search"


class FoodGroupLookup:
    """Caches the food category for each food name, lowercased."""

    def __init__(self, api_key: str = USDA_API_KEY, timeout: float = HTTP_TIMEOUT_SECONDS) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self._cache: Dict[str, Optional[str]] = {}

    async def lookup(self, food_name: Optional[str]) -> Optional[str]:
        if not food_name or not food_name.strip():
            return None
        key = food_name.strip().lower()
        if key in self._cache:
            return self._cache[key]

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    USDA_SEARCH_URL,
                    params={"api_key": self.api_key, "query": food_name, "pageSize": 1},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            # Failures are not cached so a later lookup can succeed
            logger.warning("USDA lookup for %r failed: %s", food_name, exc)
            return None

        foods = data.get("foods") or []
        group = foods[0].get("foodCategory") if foods else None
        self._cache[key] = group
        return group
