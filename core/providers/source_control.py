#!/usr/bin/env python3
"""
Source-control provider (GitHub contributions).

Two strategies, never mixed within one call:
- precise: GraphQL contribution calendar total, requires the user's token
- estimate: public REST profile, public_repos x 50 as a coarse proxy
"""

from typing import Optional
from urllib.parse import quote
import logging

from core.providers.base import SignalProvider, SOURCE_CONTROL
from core.scorer.models import SignalInput

logger = logging.getLogger(__name__)

CONTRIBUTIONS_QUERY = """
query($login: String!) {
  user(login: $login) {
    contributionsCollection {
      contributionCalendar {
        totalContributions
      }
    }
  }
}
"""

# Conservative on purpose: users who link their account get the precise count
CONTRIBUTIONS_PER_PUBLIC_REPO = 50


def extract_github_username(value: Optional[str]) -> Optional[str]:
    """Accept either a profile URL or a bare username."""
    if not value:
        return None
    value = value.strip()
    if "github.com/" in value:
        tail = value.split("github.com/", 1)[1]
        username = tail.split("/")[0].split("?")[0].split("#")[0]
        return username or None
    return value.lstrip("@") or None


class SourceControlProvider(SignalProvider):
    """GitHub contribution activity."""

    provider_name = SOURCE_CONTROL
    signal_key = "github_contributions"
    application_attr = "github_url"
    user_attr = "github_username"
    accepts_credential = True

    def _fetch(self, identifier: str, credential: Optional[str]) -> SignalInput:
        username = extract_github_username(identifier)
        if not username:
            raise self._fail(f"cannot extract username from '{identifier}'")

        if credential:
            return self._fetch_precise(username, credential)
        return self._fetch_estimate(username)

    def _fetch_precise(self, username: str, token: str) -> SignalInput:
        response = self._request(
            "POST",
            f"{self.base_url}/graphql",
            json={"query": CONTRIBUTIONS_QUERY, "variables": {"login": username}},
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
        )
        if not response.ok:
            raise self._fail(f"GraphQL request failed: {response.status_code}")

        payload = response.json()
        errors = payload.get("errors") or []
        if errors:
            raise self._fail(errors[0].get("message", "GraphQL error"))

        user = (payload.get("data") or {}).get("user")
        if user is None:
            raise self._fail(f"GitHub user '{username}' not found")

        total = user["contributionsCollection"]["contributionCalendar"]["totalContributions"]
        logger.debug(f"GitHub GraphQL contributions for {username}: {total}")
        return self._signal(total)

    def _fetch_estimate(self, username: str) -> SignalInput:
        response = self._request(
            "GET",
            f"{self.base_url}/users/{quote(username, safe='')}",
            headers={"Accept": "application/vnd.github+json"},
        )
        if response.status_code == 404:
            raise self._fail(f"GitHub user '{username}' not found")
        if not response.ok:
            raise self._fail(f"GitHub REST API returned {response.status_code}")

        public_repos = response.json()["public_repos"]
        if isinstance(public_repos, bool) or not isinstance(public_repos, (int, float)):
            raise self._fail(f"malformed response: public_repos={public_repos!r}")

        return self._signal(public_repos * CONTRIBUTIONS_PER_PUBLIC_REPO)
