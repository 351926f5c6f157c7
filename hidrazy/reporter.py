"""
Client-side usage reporter.

Talks to the usage endpoints over HTTP on behalf of a signed-in learner.
Display failures are raised; pre-request checks fail open.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import httpx

from hidrazy.policy import (
    Allowed,
    AllowedDegraded,
    Decision,
    DeniedWithFallback,
    DeniedWithMessage,
    RequestType,
)

logger = logging.getLogger("hidrazy.reporter")


class UsageReportError(Exception):
    """Raised when usage cannot be fetched for display."""


def decision_from_dict(data: dict) -> Decision:
    """Rebuild a Decision from the check endpoint's JSON body."""
    if data.get("allowed"):
        if data.get("degraded"):
            return AllowedDegraded(reason="Usage check unavailable on server")
        return Allowed()
    if data.get("fallback"):
        return DeniedWithFallback(fallback_model=data["fallback"], message=data.get("message", ""))
    return DeniedWithMessage(message=data.get("message", ""))


class UsageReporter:
    """HTTP client for the usage endpoints."""

    def __init__(
        self,
        base_url: str,
        access_token: str,
        client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {access_token}"}
        self._client = client or httpx.Client(timeout=timeout)

    def _post(self, path: str, body: dict) -> dict:
        response = self._client.post(f"{self.base_url}{path}", json=body, headers=self._headers)
        response.raise_for_status()
        return response.json()

    def fetch_usage(self) -> dict:
        """
        Current usage with limits and warnings.

        Raises:
            UsageReportError: On transport or server failure.
        """
        try:
            data = self._post("/usage", {})
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to fetch usage stats: %s", exc)
            raise UsageReportError(str(exc)) from exc

        for warning in data.get("warnings", []):
            logger.warning("Cost alert: %s", warning)
        return data

    def check_before_request(self, request_type: Union[str, RequestType]) -> Decision:
        """Ask the server whether a request may go ahead. Fails open."""
        kind = RequestType.parse(request_type)
        try:
            data = self._post("/usage/check", {"requestType": kind.value})
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Failed to check usage limits, allowing request: %s", exc)
            return AllowedDegraded(reason=str(exc))

        decision = decision_from_dict(data)
        if not decision.allowed:
            logger.info("Usage limit reached: %s", decision.message)
        return decision

    def close(self) -> None:
        self._client.close()
