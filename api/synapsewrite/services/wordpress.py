"""Publish generated articles as WordPress drafts."""

import httpx

from synapsewrite.errors import ConfigurationError, UpstreamUnavailable


class WordPressClient:
    """Create draft posts through the WordPress REST API with an application password."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        site: str | None,
        user: str | None,
        app_password: str | None,
    ):
        self._http = http
        self._site = site.rstrip("/") if site else None
        self._user = user
        self._app_password = app_password

    def _require_config(self) -> str:
        if not (self._site and self._user and self._app_password):
            raise ConfigurationError(
                "Server not configured: missing WP_SITE / WP_USER / WP_APP_PASSWORD"
            )
        return self._site

    def edit_url(self, post_id: int) -> str:
        return f"{self._site}/wp-admin/post.php?post={post_id}&action=edit"

    async def create_draft(self, title: str, content: str) -> int:
        """
        Create a draft post and return its id.

        ``content`` is stored as-is, so it should already be HTML.

        Raises:
            ConfigurationError: site or credentials missing
            UpstreamUnavailable: WordPress rejected the request or was unreachable
        """
        site = self._require_config()
        try:
            response = await self._http.post(
                f"{site}/wp-json/wp/v2/posts",
                json={"title": title, "content": content, "status": "draft"},
                auth=(self._user, self._app_password),
            )
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable("WordPress unreachable", detail=str(exc) or type(exc).__name__) from exc

        try:
            data = response.json()
        except ValueError:
            data = response.text[:500]

        if not response.is_success or not isinstance(data, dict) or "id" not in data:
            raise UpstreamUnavailable(
                "WP API error", detail=data, upstream_status=response.status_code
            )
        return data["id"]
