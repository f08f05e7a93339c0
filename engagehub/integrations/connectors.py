"""
Social platform connectors (Instagram and Facebook Graph API).

Every non-2xx response and every transport failure is raised as
``ConnectorError`` carrying the upstream status and body, so callers can
tell transient failures (network, 429, 5xx) from fatal ones.
"""

from typing import Any

import httpx

from engagehub.config import settings
from engagehub.core.exceptions import ConnectorError
from engagehub.core.logging_config import get_logger
from engagehub.models.tenant import Platform, Tenant

logger = get_logger(__name__)


class PlatformConnector:
    """Base Graph API connector bound to one tenant's credentials."""

    platform: str = ""
    comment_fields: str = ""
    reply_edge: str = ""

    def __init__(
        self,
        access_token: str,
        page_id: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.access_token = access_token
        self.page_id = page_id
        self.base_url = f"{settings.graph_api_base_url.rstrip('/')}/{settings.graph_api_version}"
        self.timeout = timeout or settings.external_call_timeout_seconds
        self._client = client

    async def fetch_comments(self, post_id: str) -> list[dict[str, Any]]:
        """
        Fetch comments for a post.

        Returns a list of ``{id, text, author, like_count, timestamp, post_id}``.
        """
        data = await self._request(
            "GET",
            f"/{post_id}/comments",
            params={"fields": self.comment_fields, "access_token": self.access_token},
        )
        comments = [self._normalize(item, post_id) for item in data.get("data", [])]
        logger.debug(
            "comments_fetched",
            platform=self.platform,
            post_id=post_id,
            count=len(comments),
        )
        return comments

    async def send_reply(self, comment_id: str, text: str) -> dict[str, Any]:
        """Publish a reply to a comment and return the platform response."""
        response = await self._request(
            "POST",
            f"/{comment_id}/{self.reply_edge}",
            data={"message": text, "access_token": self.access_token},
        )
        logger.info("reply_published", platform=self.platform, comment_id=comment_id)
        return response

    def _normalize(self, item: dict[str, Any], post_id: str) -> dict[str, Any]:
        raise NotImplementedError

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.request(method, url, params=params, data=data)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, params=params, data=data)
        except httpx.HTTPError as e:
            logger.warning(
                "connector_request_failed",
                platform=self.platform,
                path=path,
                error=str(e),
            )
            raise ConnectorError(
                f"{self.platform} request failed: {e}",
                platform=self.platform,
            ) from e

        if response.status_code >= 400:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            logger.warning(
                "connector_error_response",
                platform=self.platform,
                path=path,
                status_code=response.status_code,
            )
            raise ConnectorError(
                f"{self.platform} API returned {response.status_code}",
                upstream_status=response.status_code,
                body=body,
                platform=self.platform,
            )

        try:
            return response.json()
        except ValueError:
            return {}


class InstagramConnector(PlatformConnector):
    platform = Platform.INSTAGRAM.value
    comment_fields = "id,text,from,like_count,timestamp"
    reply_edge = "replies"

    def _normalize(self, item: dict[str, Any], post_id: str) -> dict[str, Any]:
        return {
            "id": item.get("id"),
            "text": item.get("text", ""),
            "author": item.get("from") or {},
            "like_count": item.get("like_count", 0),
            "timestamp": item.get("timestamp"),
            "post_id": post_id,
        }


class FacebookConnector(PlatformConnector):
    platform = Platform.FACEBOOK.value
    comment_fields = "id,message,from,like_count,created_time,comment_count"
    reply_edge = "comments"

    def _normalize(self, item: dict[str, Any], post_id: str) -> dict[str, Any]:
        return {
            "id": item.get("id"),
            "text": item.get("message", ""),
            "author": item.get("from") or {},
            "like_count": item.get("like_count", 0),
            "timestamp": item.get("created_time"),
            "post_id": post_id,
        }


CONNECTORS: dict[str, type[PlatformConnector]] = {
    Platform.INSTAGRAM.value: InstagramConnector,
    Platform.FACEBOOK.value: FacebookConnector,
}


def build_connector(
    tenant: Tenant,
    platform: str,
    client: httpx.AsyncClient | None = None,
) -> PlatformConnector:
    """
    Build a connector for one of the tenant's platforms.

    Raises:
        ConnectorError: Unsupported platform or missing credentials (fatal)
    """
    platform = getattr(platform, "value", platform)
    connector_class = CONNECTORS.get(platform)
    if connector_class is None:
        raise ConnectorError(
            f"Unsupported platform: {platform}",
            platform=platform,
            transient=False,
        )

    access_token, page_id = tenant.platform_credentials(platform)
    if not access_token:
        raise ConnectorError(
            f"{platform} is not configured for this tenant",
            platform=platform,
            transient=False,
        )

    return connector_class(access_token=access_token, page_id=page_id, client=client)
