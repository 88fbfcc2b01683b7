"""
Thin client for the Raindrop.io REST API.

Wraps a requests.Session with bearer auth and the resilient transport from
rdcli.resilience; each method is one API call returning the decoded JSON body.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from rdcli.config import RdcliConfig
from rdcli.errors import ApiError, ConfigError
from rdcli.resilience import setup_client_interceptors

logger = logging.getLogger(__name__)

TOKEN_HELP = (
    "No API token configured. Run 'rdcli config set-token' or set RAINDROP_TOKEN "
    "environment variable.\nGet your token from: https://app.raindrop.io/settings/integrations"
)

# Special collection ids
ALL_COLLECTION = 0
UNSORTED_COLLECTION = -1
TRASH_COLLECTION = -99

FAVORITES_SEARCH = "❤️"
MAX_PER_PAGE = 50


class RaindropClient:
    """Raindrop API access over a resilient requests session."""

    def __init__(self, config: RdcliConfig, session: Optional[requests.Session] = None,
                 **adapter_kwargs):
        """
        Initialize the client.

        Args:
            config: Resolved configuration (token, base URL, timeout)
            session: Session to use (a new one is created when omitted)
            **adapter_kwargs: Passed to the resilient transport (sleep, rand, clock)

        Raises:
            ConfigError: if no token is configured
        """
        if not config.token:
            raise ConfigError(TOKEN_HELP)

        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {config.token}",
            "User-Agent": config.user_agent,
            "Accept": "application/json",
        })
        logger.debug("Setting up client interceptors")
        setup_client_interceptors(self.session, config, **adapter_kwargs)

    def request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Perform one API call and return the decoded body."""
        kwargs.setdefault("timeout", self.config.timeout)
        response = self.session.request(method, f"{self.base_url}/{path.lstrip('/')}", **kwargs)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON in API response: {e}", response.status_code,
                           {"url": response.url, "method": method}) from e

    def get(self, path: str, **kwargs) -> Dict[str, Any]:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs) -> Dict[str, Any]:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs) -> Dict[str, Any]:
        return self.request("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs) -> Dict[str, Any]:
        return self.request("DELETE", path, **kwargs)

    # Endpoint helpers

    def collections(self) -> List[Dict[str, Any]]:
        return self.get("collections").get("items", [])

    def child_collections(self) -> List[Dict[str, Any]]:
        return self.get("collections/childrens").get("items", [])

    def collection(self, collection_id: int) -> Dict[str, Any]:
        return self.get(f"collection/{collection_id}").get("item", {})

    def raindrops(self, collection_id: int = ALL_COLLECTION, search: Optional[str] = None,
                  page: int = 0, per_page: int = MAX_PER_PAGE) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page, "perpage": min(per_page, MAX_PER_PAGE)}
        if search:
            params["search"] = search
        return self.get(f"raindrops/{collection_id}", params=params)

    def raindrop(self, raindrop_id: int) -> Dict[str, Any]:
        return self.get(f"raindrop/{raindrop_id}").get("item", {})

    def tags(self, collection_id: Optional[int] = None) -> List[Dict[str, Any]]:
        path = "tags" if collection_id is None else f"tags/{collection_id}"
        return self.get(path).get("items", [])

    def highlights(self, page: int = 0, per_page: int = MAX_PER_PAGE) -> List[Dict[str, Any]]:
        params = {"page": page, "perpage": min(per_page, MAX_PER_PAGE)}
        return self.get("highlights", params=params).get("items", [])

    def user(self) -> Dict[str, Any]:
        return self.get("user").get("user", {})


def fetch_all_pages(fetch_page: Callable[[int, int], Dict[str, Any]],
                    per_page: int = MAX_PER_PAGE,
                    max_items: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Collect items across pages.

    Args:
        fetch_page: Called with (page, per_page); returns a body with "items"
            and optionally "count" (the total)
        per_page: Page size
        max_items: Stop after this many items

    Returns:
        The collected items
    """
    items: List[Dict[str, Any]] = []
    page = 0
    while True:
        body = fetch_page(page, per_page)
        batch = body.get("items", [])
        items.extend(batch)

        if max_items is not None and len(items) >= max_items:
            return items[:max_items]
        total = body.get("count")
        if not batch or len(batch) < per_page or (total is not None and len(items) >= total):
            return items
        page += 1
