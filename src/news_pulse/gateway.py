from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set, TypeVar

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import (
    DEFAULT_API_BASE_URL,
    HTTP_TIMEOUT,
    REQUEST_HEADERS,
    RETRY_BACKOFF,
    RETRY_STATUSES,
    RETRY_TOTAL,
)
from .datamodels import AlertRecord, Article, Preferences
from .errors import InvalidIdentity, NetworkError, ServerError, ValidationError

logger = logging.getLogger("news_pulse")

T = TypeVar("T")


def _require_identity(identity: Optional[str]) -> str:
    if not identity or not identity.strip():
        raise InvalidIdentity("This action requires a signed-in email address.")
    return identity.strip()


class RemoteGateway:
    """Typed façade over the news alert API.

    Holds no state besides the HTTP session. Every public method is a
    coroutine; the blocking request runs in a worker thread so the event
    loop driving the UI never stalls.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        s = requests.Session()
        s.headers.update(REQUEST_HEADERS)
        # POSTs are not retried: add/remove and the archive toggle are not idempotent.
        retries = Retry(
            total=RETRY_TOTAL,
            backoff_factor=RETRY_BACKOFF,
            status_forcelist=list(RETRY_STATUSES),
            allowed_methods=frozenset({"GET"}),
        )
        adapter = HTTPAdapter(max_retries=retries)
        s.mount("https://", adapter)
        s.mount("http://", adapter)
        return s

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("%s %s params=%s", method, url, params)
        try:
            resp = self.session.request(
                method, url, params=params, json=payload, timeout=self.timeout
            )
        except requests.exceptions.RetryError as e:
            logger.warning("Retries exhausted for %s %s: %s", method, url, e)
            raise ServerError(f"Server kept failing for {path}") from e
        except requests.RequestException as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise NetworkError(f"Could not reach the news service ({e.__class__.__name__})") from e

        if not resp.ok:
            logger.warning("%s %s returned %s", method, url, resp.status_code)
            raise ServerError(
                f"{method} {path} returned {resp.status_code}", resp.status_code
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ServerError(f"Unreadable response from {path}", resp.status_code) from e

    async def _call(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return await asyncio.to_thread(self._request, method, path, params, payload)

    @staticmethod
    def _parse_records(data: Any, parse: Callable[[Dict[str, Any]], T], what: str) -> List[T]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise ServerError(f"Expected a list of {what}, got {type(data).__name__}")
        records: List[T] = []
        for item in data:
            try:
                records.append(parse(item))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning("Skipping malformed %s record: %s", what, e)
        return records

    @staticmethod
    def _parse_flag(data: Any, fallback: bool) -> bool:
        if isinstance(data, bool):
            return data
        if isinstance(data, dict) and isinstance(data.get("bookmarked"), bool):
            return data["bookmarked"]
        return fallback

    # --- Feed ---
    async def fetch_feed(self, category: Optional[str] = None) -> List[Article]:
        params = {"category": category} if category else None
        data = await self._call("GET", "/news", params=params)
        return self._parse_records(data, Article.from_api, "articles")

    # --- Alert history ---
    async def fetch_alerts(self, identity: Optional[str]) -> List[AlertRecord]:
        email = _require_identity(identity)
        data = await self._call("GET", "/news", params={"email": email})
        return self._parse_records(data, AlertRecord.from_api, "alerts")

    async def toggle_alert_bookmark(
        self, identity: Optional[str], alert_id: str, bookmarked: bool
    ) -> bool:
        """Flip an alert's bookmark server-side; `bookmarked` is the caller's current view."""
        email = _require_identity(identity)
        data = await self._call(
            "POST", "/news/bookmark", payload={"email": email, "alertId": alert_id}
        )
        return self._parse_flag(data, not bookmarked)

    # --- Feed bookmarks ---
    async def fetch_bookmarks(self, identity: Optional[str]) -> Set[str]:
        email = _require_identity(identity)
        data = await self._call("GET", "/users/bookmarks", params={"email": email})
        if data is None:
            return set()
        if not isinstance(data, list):
            raise ServerError("Expected a list of bookmarks")
        ids: Set[str] = set()
        for item in data:
            article_id = item.get("articleId") if isinstance(item, dict) else item
            if article_id:
                ids.add(str(article_id))
        return ids

    async def toggle_bookmark(
        self, identity: Optional[str], article_id: str, bookmarked: bool
    ) -> bool:
        """Add or remove a feed bookmark depending on the caller's current state."""
        email = _require_identity(identity)
        endpoint = "remove-bookmark" if bookmarked else "add-bookmark"
        data = await self._call(
            "POST", f"/users/{endpoint}", payload={"email": email, "articleId": article_id}
        )
        return self._parse_flag(data, not bookmarked)

    # --- Preferences ---
    async def fetch_preferences(self, identity: Optional[str]) -> Optional[Preferences]:
        email = _require_identity(identity)
        data = await self._call("GET", "/users/preferences", params={"email": email})
        if not data:
            return None
        if not isinstance(data, dict):
            raise ServerError("Expected a preferences object")
        return Preferences.from_api(data)

    async def save_preferences(self, identity: Optional[str], preferences: Preferences) -> None:
        email = _require_identity(identity)
        if not preferences.categories:
            raise ValidationError("Please select at least one news category.")
        await self._call("POST", "/users/subscribe", payload=preferences.to_api(email))
