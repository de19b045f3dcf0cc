"""YouTube Data API v3 catalog client over httpx."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from tubesync.services.datetime_service import parse_datetime, parse_duration
from tubesync.youtube.base import (
    CatalogAuthorizationError,
    CatalogError,
    CatalogNotFoundError,
    CatalogTransientError,
    ChannelRecord,
    PlaylistRecord,
    VideoRecord,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence
    from datetime import datetime

    from tubesync.config import Settings

logger = logging.getLogger(__name__)

PAGE_SIZE = 50
MAX_IDS_PER_REQUEST = 50
_VIDEO_PARTS = "snippet,contentDetails,status,recordingDetails"


def _error_reasons(response: httpx.Response) -> set[str]:
    """Extract ``error.errors[].reason`` values from a Google API error body."""
    try:
        body = response.json()
    except ValueError:
        return set()
    if not isinstance(body, dict):
        return set()
    error = body.get("error")
    if not isinstance(error, dict):
        return set()
    return {
        str(item.get("reason"))
        for item in error.get("errors", [])
        if isinstance(item, dict) and item.get("reason")
    }


def _raise_for_status(response: httpx.Response, what: str) -> None:
    status = response.status_code
    if status < 400:
        return
    if status in (401, 403):
        msg = f"YouTube rejected {what} ({status})"
        raise CatalogAuthorizationError(msg)
    if status == 404:
        msg = f"YouTube has no {what}"
        raise CatalogNotFoundError(msg)
    if status == 429 or status >= 500:
        msg = f"YouTube temporarily failed {what} ({status})"
        raise CatalogTransientError(msg)
    msg = f"YouTube request for {what} failed ({status})"
    raise CatalogError(msg)


def _video_record(item: dict[str, Any]) -> VideoRecord:
    snippet = item.get("snippet") or {}
    content = item.get("contentDetails") or {}
    status = item.get("status") or {}
    recording = item.get("recordingDetails") or {}
    location = recording.get("location") or {}

    publish_at = status.get("publishAt")
    return VideoRecord(
        channel_id=snippet.get("channelId", ""),
        video_id=item["id"],
        title=snippet.get("title", ""),
        description=snippet.get("description", ""),
        tags=list(snippet.get("tags") or []),
        duration=parse_duration(content.get("duration")),
        privacy_status=status.get("privacyStatus"),
        scheduled_publish_at=parse_datetime(publish_at) if publish_at else None,
        published_at=parse_datetime(snippet["publishedAt"]),
        category_id=snippet.get("categoryId"),
        default_language=snippet.get("defaultLanguage"),
        default_audio_language=snippet.get("defaultAudioLanguage"),
        latitude=location.get("latitude"),
        longitude=location.get("longitude"),
        location_description=recording.get("locationDescription"),
        etag=item.get("etag"),
    )


class YouTubeCatalogClient:
    """Catalog client backed by the YouTube Data API.

    Authenticates with a bearer access token when one is configured, otherwise
    with an API key.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        access_token: str = "",
        timeout: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> YouTubeCatalogClient:
        return cls(
            settings.youtube_api_base_url,
            api_key=settings.youtube_api_key,
            access_token=settings.youtube_access_token,
            timeout=settings.youtube_timeout_seconds,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _get(self, path: str, params: dict[str, Any], what: str) -> httpx.Response:
        if self._api_key:
            params = {**params, "key": self._api_key}
        try:
            response = await self._client.get(path, params=params)
        except httpx.TransportError as exc:
            msg = f"Network error while fetching {what}: {exc}"
            raise CatalogTransientError(msg) from exc
        return response

    async def _get_json(self, path: str, params: dict[str, Any], what: str) -> dict[str, Any]:
        response = await self._get(path, params, what)
        _raise_for_status(response, what)
        data: dict[str, Any] = response.json()
        return data

    async def _paged_items(
        self, path: str, params: dict[str, Any], what: str
    ) -> AsyncIterator[list[dict[str, Any]]]:
        page_token: str | None = None
        while True:
            page_params = {**params, "maxResults": PAGE_SIZE}
            if page_token:
                page_params["pageToken"] = page_token
            data = await self._get_json(path, page_params, what)
            yield list(data.get("items") or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                return

    async def get_channel(self, channel_id: str) -> ChannelRecord | None:
        data = await self._get_json(
            "/channels",
            {"part": "snippet,contentDetails", "id": channel_id},
            f"channel {channel_id}",
        )
        items = data.get("items") or []
        if not items:
            return None
        item = items[0]
        related = (item.get("contentDetails") or {}).get("relatedPlaylists") or {}
        return ChannelRecord(
            channel_id=item["id"],
            name=(item.get("snippet") or {}).get("title", ""),
            uploads_feed_id=related.get("uploads"),
            etag=item.get("etag"),
        )

    async def stream_uploads(
        self, uploads_feed_id: str, since: datetime | None = None
    ) -> AsyncIterator[VideoRecord]:
        what = f"uploads feed {uploads_feed_id}"
        async for items in self._paged_items(
            "/playlistItems",
            {"part": "snippet,contentDetails", "playlistId": uploads_feed_id},
            what,
        ):
            reached_cutoff = False
            page_ids: list[str] = []
            for item in items:
                content = item.get("contentDetails") or {}
                video_id = content.get("videoId")
                if not video_id:
                    continue
                raw_published = content.get("videoPublishedAt") or (
                    item.get("snippet") or {}
                ).get("publishedAt")
                if since is not None and raw_published and parse_datetime(raw_published) <= since:
                    reached_cutoff = True
                    continue
                page_ids.append(video_id)

            if page_ids:
                details = {r.video_id: r for r in await self.fetch_video_details(page_ids)}
                for video_id in page_ids:
                    record = details.get(video_id)
                    if record is not None:
                        yield record

            if reached_cutoff:
                logger.debug("Reached uploads cutoff %s in %s", since, uploads_feed_id)
                return

    async def stream_playlists(self, channel_id: str) -> AsyncIterator[PlaylistRecord]:
        async for items in self._paged_items(
            "/playlists",
            {"part": "snippet", "channelId": channel_id},
            f"playlists of {channel_id}",
        ):
            for item in items:
                yield PlaylistRecord(
                    playlist_id=item.get("id", ""),
                    title=(item.get("snippet") or {}).get("title"),
                    etag=item.get("etag"),
                )

    async def stream_playlist_members(self, playlist_id: str) -> AsyncIterator[str]:
        async for items in self._paged_items(
            "/playlistItems",
            {"part": "contentDetails", "playlistId": playlist_id},
            f"playlist {playlist_id}",
        ):
            for item in items:
                video_id = (item.get("contentDetails") or {}).get("videoId")
                if video_id:
                    yield video_id

    async def fetch_video_details(self, video_ids: Sequence[str]) -> list[VideoRecord]:
        records: list[VideoRecord] = []
        ids = list(dict.fromkeys(video_ids))
        for start in range(0, len(ids), MAX_IDS_PER_REQUEST):
            chunk = ids[start : start + MAX_IDS_PER_REQUEST]
            data = await self._get_json(
                "/videos",
                {"part": _VIDEO_PARTS, "id": ",".join(chunk)},
                f"details of {len(chunk)} videos",
            )
            for item in data.get("items") or []:
                try:
                    records.append(_video_record(item))
                except (KeyError, ValueError) as exc:
                    logger.warning("Skipping malformed video %s: %s", item.get("id"), exc)
        return records

    async def check_comments_enabled(self, video_id: str) -> bool | None:
        what = f"comments of {video_id}"
        response = await self._get(
            "/commentThreads",
            {"part": "id", "videoId": video_id, "maxResults": 1},
            what,
        )
        if response.status_code == 403 and "commentsDisabled" in _error_reasons(response):
            return False
        _raise_for_status(response, what)
        return True
