"""HTTP client for the Cloudflare Pages deployments API."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from exceptions import PagesAPIError
from models import Observation

logger = logging.getLogger("deploywatch.pages_client")


class PagesClient:
    """Reads the most recent deployment of a Pages project."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        account_id: str,
        api_token: str,
        base_url: str = "https://api.cloudflare.com/client/v4",
    ) -> None:
        self._client = client
        self._account_id = account_id
        self._api_token = api_token
        self._base_url = base_url.rstrip("/")

    def deployments_url(self, project: str) -> str:
        return (
            f"{self._base_url}/accounts/{quote(self._account_id, safe='')}"
            f"/pages/projects/{quote(project, safe='')}/deployments"
        )

    def _build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_token}",
            "Accept": "application/json",
        }

    async def fetch_latest(self, project: str) -> Observation | None:
        """Return the newest deployment of *project*, or ``None`` if it has none.

        Raises:
            PagesAPIError: The request failed, returned a non-2xx status, or
                the API reported ``success: false``.
        """
        try:
            response = await self._client.get(
                self.deployments_url(project),
                params={"per_page": 1},
                headers=self._build_headers(),
            )
        except httpx.HTTPError as exc:
            raise PagesAPIError(project, None, str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise PagesAPIError(project, response.status_code, _error_detail(response))

        try:
            payload = response.json()
        except ValueError as exc:
            raise PagesAPIError(
                project, response.status_code, "response body is not JSON"
            ) from exc

        if not isinstance(payload, dict):
            raise PagesAPIError(project, response.status_code, "unexpected response")
        if payload.get("success") is False:
            raise PagesAPIError(
                project, response.status_code, _join_errors(payload.get("errors"))
            )

        results = payload.get("result")
        if not isinstance(results, list) or not results:
            logger.debug("No deployments found for %s", project)
            return None
        latest = results[0]
        if not isinstance(latest, dict):
            return None
        return Observation.from_deployment(latest)


def _join_errors(errors: Any) -> str:
    """Flatten the API's ``errors`` array into a readable string."""
    if not isinstance(errors, list):
        return ""
    messages = []
    for err in errors:
        if isinstance(err, dict):
            code = err.get("code")
            message = err.get("message", "")
            messages.append(f"[{code}] {message}" if code is not None else message)
        else:
            messages.append(str(err))
    return "; ".join(m for m in messages if m)


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = _join_errors(response.json().get("errors"))
    except (ValueError, AttributeError):
        detail = ""
    return detail or response.text[:200]
