"""
Thin Microsoft Graph client used by every command.

All calls are synchronous. Collection reads follow `@odata.nextLink` until the
server stops returning one, so callers always see the complete result set.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from autopilot_tools.errors import GraphConnectionError, GraphRequestError

logger = logging.getLogger(__name__)

GRAPH_BETA = "https://graph.microsoft.com/beta"
NEXT_LINK = "@odata.nextLink"


def headers_json(token: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/json",
        "Content-Type": "application/json",
    }


class GraphSession:
    """
    Authenticated handle passed explicitly to every command.

    Produced by `autopilot_tools.auth`; holds the bearer token and one pooled
    `requests.Session`.
    """

    def __init__(
        self,
        token: str,
        base_url: str = GRAPH_BETA,
        timeout: int = 30,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()

    def url(self, uri: str) -> str:
        if uri.startswith("https://") or uri.startswith("http://"):
            return uri
        return f"{self.base_url}/{uri.lstrip('/')}"

    def request(self, method: str, uri: str, body: Optional[Dict[str, Any]] = None) -> Any:
        url = self.url(uri)
        logger.debug("Graph request: %s %s", method, url)
        try:
            r = self.http.request(
                method,
                url,
                headers=headers_json(self.token),
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as err:
            raise GraphConnectionError(method, url, err) from err
        logger.debug("Graph response: %s %s -> %s", method, url, r.status_code)

        if not 200 <= r.status_code < 300:
            try:
                detail: Any = r.json()
            except ValueError:
                detail = r.text
            raise GraphRequestError(r.status_code, method, url, detail)

        if r.status_code == 204 or not r.content:
            return None
        try:
            return r.json()
        except ValueError:
            return r.text

    def get(self, uri: str) -> Any:
        return self.request("GET", uri)

    def get_all(self, uri: str) -> List[Dict[str, Any]]:
        """Return every item of a collection, pages concatenated in server order."""
        items: List[Dict[str, Any]] = []
        next_uri: Optional[str] = uri
        pages = 0
        while next_uri:
            page = self.get(next_uri) or {}
            items.extend(page.get("value") or [])
            next_uri = page.get(NEXT_LINK)
            pages += 1
        logger.debug("Fetched %d item(s) in %d page(s) from %s", len(items), pages, uri)
        return items

    def post(self, uri: str, body: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("POST", uri, body)

    def patch(self, uri: str, body: Dict[str, Any]) -> Any:
        return self.request("PATCH", uri, body)

    def delete(self, uri: str) -> Any:
        return self.request("DELETE", uri)
