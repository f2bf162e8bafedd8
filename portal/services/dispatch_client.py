"""
Dispatch Client
===============
Triggers the website generation workflow through GitHub's
repository_dispatch API.

    POST https://api.github.com/repos/{repository}/dispatches
    {"event_type": "...", "client_payload": {...}}

GitHub answers 204 with an empty body on success. Any non-2xx answer is
raised as DispatchError with the upstream status attached.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from portal.core.constants import USER_AGENT

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


class DispatchError(Exception):
    """The GitHub API rejected a dispatch or access check."""

    def __init__(self, status_code: int, reason: str, body: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"GitHub API returned {status_code}: {reason}")


class GitHubDispatchClient:
    """
    Thin async client for the repository_dispatch endpoint.

    An httpx.AsyncClient may be injected (tests use MockTransport);
    otherwise a short-lived client is opened per call.
    """

    def __init__(
        self,
        token: str,
        repository: str,
        event_type: str,
        api_url: str = GITHUB_API_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 20.0,
    ) -> None:
        self.repository = repository
        self.event_type = event_type
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": USER_AGENT,
        }

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.api_url}{path}"
        if self._client is not None:
            return await self._client.request(method, url, headers=self.headers, **kwargs)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, headers=self.headers, **kwargs)

    @staticmethod
    def _reason(response: httpx.Response) -> str:
        return response.reason_phrase or "Unknown"

    async def dispatch(self, client_payload: Dict[str, Any]) -> None:
        """Send the repository_dispatch event. Raises DispatchError on non-2xx."""
        body = {"event_type": self.event_type, "client_payload": client_payload}
        response = await self._request("POST", f"/repos/{self.repository}/dispatches", json=body)

        if not response.is_success:
            logger.error(
                "GitHub dispatch failed: HTTP %d %s: %s",
                response.status_code, self._reason(response), response.text[:500]
            )
            raise DispatchError(response.status_code, self._reason(response), response.text)

        logger.info(
            "Dispatched %s to %s for %s",
            self.event_type, self.repository, client_payload.get("client_name", "?")
        )

    async def check_access(self) -> Dict[str, Any]:
        """
        Verify the token authenticates and can see the workflow repository.

        Returns a summary dict; never raises for HTTP status codes.
        """
        result: Dict[str, Any] = {
            "authenticated": False,
            "login": "",
            "repository_access": False,
            "workflows_visible": False,
        }

        user_resp = await self._request("GET", "/user")
        if not user_resp.is_success:
            logger.warning("Token authentication failed: HTTP %d", user_resp.status_code)
            return result
        result["authenticated"] = True
        result["login"] = user_resp.json().get("login", "")

        repo_resp = await self._request("GET", f"/repos/{self.repository}")
        if not repo_resp.is_success:
            logger.warning("No access to %s: HTTP %d", self.repository, repo_resp.status_code)
            return result
        result["repository_access"] = True

        workflows_resp = await self._request("GET", f"/repos/{self.repository}/actions/workflows")
        result["workflows_visible"] = workflows_resp.is_success
        return result
