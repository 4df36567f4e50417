#!/usr/bin/env python3
"""Problem-count provider (total LeetCode problems solved, public GraphQL)."""

from typing import Optional

from core.providers.base import SignalProvider, PROBLEM_COUNT
from core.scorer.models import SignalInput

USER_STATS_QUERY = """
query userStats($username: String!) {
  matchedUser(username: $username) {
    submitStats {
      acSubmissionNum {
        difficulty
        count
      }
    }
  }
}
"""


class ProblemCountProvider(SignalProvider):

    provider_name = PROBLEM_COUNT
    signal_key = "leetcode_problems"
    application_attr = "leetcode_handle"
    user_attr = "leetcode_handle"

    def _fetch(self, identifier: str, credential: Optional[str]) -> SignalInput:
        response = self._request(
            "POST",
            self.base_url,
            json={"query": USER_STATS_QUERY, "variables": {"username": identifier}},
            headers={"Content-Type": "application/json"},
        )
        if not response.ok:
            raise self._fail(f"LeetCode API returned {response.status_code}")

        payload = response.json()
        matched_user = (payload.get("data") or {}).get("matchedUser") or {}
        stats = (matched_user.get("submitStats") or {}).get("acSubmissionNum")
        if not stats:
            raise self._fail(f"LeetCode user '{identifier}' not found or has no stats")

        # The "All" entry is the aggregate; fall back to summing difficulties
        total = next((s["count"] for s in stats if s.get("difficulty") == "All"), None)
        if total is None:
            total = sum(s["count"] for s in stats)

        return self._signal(total)
