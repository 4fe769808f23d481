"""
Facebook Graph API client.

Thin async wrapper over the Graph API used for page metadata, feed and
conversation listings, and every mutating page operation. The client is
stateless apart from its pooled ``httpx.AsyncClient``; credentials travel
as the ``access_token`` query parameter on every call.

Calls are never retried. A non-2xx answer becomes an ``UpstreamError``
carrying the platform's status and message.
"""

from typing import Any, Dict, List, Optional

import httpx
import structlog
from pydantic import BaseModel, Field

from fanpage_service.config.constants import (
    GRAPH_PAGE_FIELDS,
    GRAPH_POST_FIELDS,
    GRAPH_COMMENT_FIELDS,
    GRAPH_FEED_COMMENT_FIELDS,
    GRAPH_CONVERSATION_FIELDS,
)
from fanpage_service.config.settings import Settings, get_settings
from fanpage_service.exceptions.base_exceptions import UpstreamError
from fanpage_service.utils.metrics import MetricsCollector, get_metrics_collector

logger = structlog.get_logger(__name__)


class GraphClientConfig(BaseModel):
    """Configuration model for the Graph API client."""

    base_url: str = "https://graph.facebook.com/v23.0"
    app_id: Optional[str] = None
    app_secret: Optional[str] = None
    page_size: int = Field(default=100, ge=1, le=100)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GraphClientConfig":
        settings = settings or get_settings()
        return cls(
            base_url=settings.graph_api_base_url,
            app_id=settings.FACEBOOK_APP_ID,
            app_secret=settings.FACEBOOK_APP_SECRET,
            page_size=settings.FACEBOOK_PAGE_SIZE,
        )


class FacebookGraphClient:
    """Async client for the Facebook Graph API"""

    def __init__(
            self,
            config: Optional[GraphClientConfig] = None,
            http_client: Optional[httpx.AsyncClient] = None,
            metrics: Optional[MetricsCollector] = None
    ):
        """
        Args:
            config: Client configuration, built from settings when omitted
            http_client: Pre-built client (tests pass one with a MockTransport)
            metrics: Collector used to time platform calls
        """
        self.config = config or GraphClientConfig.from_settings()
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            headers={"User-Agent": "FanpageService/1.0 GraphClient"}
        )
        self.metrics = metrics or get_metrics_collector()
        self.logger = structlog.get_logger("FacebookGraphClient")

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def _request(
            self,
            method: str,
            path: str,
            operation: str,
            access_token: Optional[str] = None,
            params: Optional[Dict[str, Any]] = None,
            json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        query = dict(params or {})
        if access_token:
            query["access_token"] = access_token

        with self.metrics.measure_platform_call(operation):
            try:
                response = await self.http_client.request(
                    method, self._url(path), params=query, json=json
                )
            except httpx.HTTPError as e:
                self.logger.error(
                    "Graph API transport error",
                    operation=operation,
                    error=str(e),
                    error_type=type(e).__name__
                )
                raise UpstreamError(
                    f"Graph API request failed: {e}",
                    operation=operation,
                    caused_by=e
                )

            if response.is_error:
                raise self._error_from_response(response, operation)

        if not response.content:
            return {}
        return response.json()

    def _error_from_response(self, response: httpx.Response, operation: str) -> UpstreamError:
        message = f"Graph API error: {response.status_code}"
        platform_code = None

        try:
            error_data = response.json().get("error", {})
            message = error_data.get("message", message)
            platform_code = error_data.get("code")
        except (ValueError, AttributeError):
            pass

        self.logger.error(
            "Graph API request failed",
            operation=operation,
            status_code=response.status_code,
            platform_code=platform_code,
            error_message=message
        )

        return UpstreamError(
            message,
            status_code=response.status_code,
            operation=operation,
            platform_code=platform_code
        )

    def _limit(self, limit: Optional[int]) -> int:
        return min(limit or self.config.page_size, self.config.page_size)

    # ------------------------------------------------------------------
    # Pages and credentials
    # ------------------------------------------------------------------

    async def get_page_details(self, page_id: str, user_token: str) -> Dict[str, Any]:
        """Page metadata including the page access token."""
        return await self._request(
            "GET", page_id, "get_page_details",
            access_token=user_token,
            params={"fields": GRAPH_PAGE_FIELDS}
        )

    async def list_user_pages(self, user_token: str) -> List[Dict[str, Any]]:
        """Pages the user administers."""
        data = await self._request(
            "GET", "me/accounts", "list_user_pages",
            access_token=user_token,
            params={"fields": GRAPH_PAGE_FIELDS}
        )
        return data.get("data", [])

    async def get_page_access_token(self, page_id: str, user_token: str) -> str:
        data = await self._request(
            "GET", page_id, "get_page_access_token",
            access_token=user_token,
            params={"fields": "access_token"}
        )
        token = data.get("access_token")
        if not token:
            raise UpstreamError("Graph API returned no page access token", operation="get_page_access_token")
        return token

    async def exchange_long_lived_token(self, user_token: str) -> Dict[str, Any]:
        """
        Exchange a user credential for a long-lived one.

        Returns:
            Graph payload with ``access_token`` and ``expires_in``
        """
        if not self.config.app_id or not self.config.app_secret:
            raise UpstreamError(
                "Facebook app credentials are not configured",
                operation="exchange_long_lived_token"
            )

        data = await self._request(
            "GET", "oauth/access_token", "exchange_long_lived_token",
            params={
                "grant_type": "fb_exchange_token",
                "client_id": self.config.app_id,
                "client_secret": self.config.app_secret,
                "fb_exchange_token": user_token,
            }
        )
        if not data.get("access_token"):
            raise UpstreamError("Graph API returned no access token", operation="exchange_long_lived_token")
        return data

    # ------------------------------------------------------------------
    # Listings (single bounded page)
    # ------------------------------------------------------------------

    async def list_page_posts(
            self,
            page_id: str,
            access_token: str,
            limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET", f"{page_id}/posts", "list_page_posts",
            access_token=access_token,
            params={"fields": GRAPH_POST_FIELDS, "limit": self._limit(limit)}
        )
        return data.get("data", [])

    async def list_post_comments(
            self,
            post_id: str,
            access_token: str,
            limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Comments and replies of a post, flattened (``filter=stream``)."""
        data = await self._request(
            "GET", f"{post_id}/comments", "list_post_comments",
            access_token=access_token,
            params={
                "fields": GRAPH_COMMENT_FIELDS,
                "filter": "stream",
                "limit": self._limit(limit),
            }
        )
        return data.get("data", [])

    async def list_feed_comments(
            self,
            page_id: str,
            access_token: str,
            limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Feed entries of a page, each with an embedded ``comments.data`` list."""
        data = await self._request(
            "GET", f"{page_id}/feed", "list_feed_comments",
            access_token=access_token,
            params={"fields": GRAPH_FEED_COMMENT_FIELDS, "limit": self._limit(limit)}
        )
        return data.get("data", [])

    async def list_conversations(
            self,
            page_id: str,
            access_token: str,
            limit: Optional[int] = None,
            user_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Conversations of a page with their latest messages.

        Args:
            user_id: Restrict to the conversation with this page-scoped user id
        """
        params = {"fields": GRAPH_CONVERSATION_FIELDS, "limit": self._limit(limit)}
        if user_id:
            params["user_id"] = user_id

        data = await self._request(
            "GET", f"{page_id}/conversations", "list_conversations",
            access_token=access_token,
            params=params
        )
        return data.get("data", [])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_post(self, page_id: str, access_token: str, message: str) -> Dict[str, Any]:
        return await self._request(
            "POST", f"{page_id}/feed", "create_post",
            access_token=access_token,
            json={"message": message}
        )

    async def update_post(self, post_id: str, access_token: str, message: str) -> Dict[str, Any]:
        return await self._request(
            "POST", post_id, "update_post",
            access_token=access_token,
            json={"message": message}
        )

    async def delete_post(self, post_id: str, access_token: str) -> Dict[str, Any]:
        return await self._request("DELETE", post_id, "delete_post", access_token=access_token)

    async def reply_to_comment(self, comment_id: str, access_token: str, message: str) -> Dict[str, Any]:
        """Returns the Graph payload holding the new comment ``id``."""
        return await self._request(
            "POST", f"{comment_id}/comments", "reply_to_comment",
            access_token=access_token,
            json={"message": message}
        )

    async def set_comment_hidden(self, comment_id: str, access_token: str, hidden: bool) -> Dict[str, Any]:
        return await self._request(
            "POST", comment_id, "set_comment_hidden",
            access_token=access_token,
            json={"is_hidden": hidden}
        )

    async def send_message(self, recipient_id: str, access_token: str, text: str) -> Dict[str, Any]:
        """
        Send a Messenger text as the page.

        Returns:
            Graph payload with ``recipient_id`` and ``message_id``
        """
        return await self._request(
            "POST", "me/messages", "send_message",
            access_token=access_token,
            json={
                "recipient": {"id": recipient_id},
                "message": {"text": text},
                "messaging_type": "RESPONSE",
            }
        )
