#!/usr/bin/env python3
"""Competitive-rating provider (peak Codeforces rating, public API, no auth)."""

from typing import Optional

from core.providers.base import SignalProvider, COMPETITIVE_RATING
from core.scorer.models import SignalInput


class CompetitiveRatingProvider(SignalProvider):

    provider_name = COMPETITIVE_RATING
    signal_key = "codeforces_rating"
    application_attr = "codeforces_handle"
    user_attr = "codeforces_handle"

    def _fetch(self, identifier: str, credential: Optional[str]) -> SignalInput:
        response = self._request(
            "GET",
            f"{self.base_url}/user.info",
            params={"handles": identifier},
        )
        # Codeforces answers unknown handles with 400
        if response.status_code == 400:
            raise self._fail(f"Codeforces user '{identifier}' not found")
        if not response.ok:
            raise self._fail(f"Codeforces API returned {response.status_code}")

        payload = response.json()
        result = payload.get("result") or []
        if payload.get("status") != "OK" or not result:
            raise self._fail(f"unexpected response for '{identifier}'")

        entry = result[0]
        rating = entry.get("maxRating")
        if rating is None:
            rating = entry.get("rating")
        # Unrated accounts are a legitimate zero
        if rating is None:
            rating = 0

        return self._signal(rating)
