"""Tests for the video and reply listing endpoints."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING

import pytest

from tests.conftest import (
    CHANNEL_ID,
    FakeCatalogClient,
    at,
    create_test_client,
    make_video_record,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from httpx import AsyncClient

    from tubesync.config import Settings


@pytest.fixture
async def client(
    test_settings: Settings, fake_catalog: FakeCatalogClient
) -> AsyncGenerator[AsyncClient]:
    fake_catalog.add_upload(make_video_record("v1", at(1), title="Morning cats"))
    fake_catalog.add_upload(make_video_record("v2", at(2), title="Evening dogs"))
    fake_catalog.add_upload(
        make_video_record("v3", at(3), title="Secret cats", privacy_status="private")
    )
    async with create_test_client(test_settings, fake_catalog) as ac:
        await ac.post(f"/api/channels/pull/{CHANNEL_ID}")
        await ac.post(f"/api/channels/{CHANNEL_ID}/sync")
        yield ac


class TestVideosEndpoint:
    async def test_list_newest_first(self, client: AsyncClient) -> None:
        resp = await client.get("/api/videos")
        assert resp.status_code == 200
        body = resp.json()
        assert [v["video_id"] for v in body["items"]] == ["v3", "v2", "v1"]
        assert body["nextPageToken"] is None

    async def test_paging_with_camel_case_params(self, client: AsyncClient) -> None:
        first = (await client.get("/api/videos", params={"pageSize": 2})).json()
        assert [v["video_id"] for v in first["items"]] == ["v3", "v2"]
        token = first["nextPageToken"]
        assert token

        second = (
            await client.get("/api/videos", params={"pageSize": 2, "pageToken": token})
        ).json()
        assert [v["video_id"] for v in second["items"]] == ["v1"]
        assert second["nextPageToken"] is None

    async def test_filters(self, client: AsyncClient) -> None:
        resp = await client.get(
            "/api/videos",
            params={"title": "CATS", "visibility": ["public"], "channelId": CHANNEL_ID},
        )
        assert [v["video_id"] for v in resp.json()["items"]] == ["v1"]

    async def test_token_for_other_filters_is_rejected(self, client: AsyncClient) -> None:
        first = (await client.get("/api/videos", params={"title": "cats", "pageSize": 1})).json()
        resp = await client.get(
            "/api/videos", params={"title": "dogs", "pageToken": first["nextPageToken"]}
        )
        assert resp.status_code == 400

    async def test_garbage_token(self, client: AsyncClient) -> None:
        resp = await client.get("/api/videos", params={"pageToken": "!!!"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Page token is invalid or malformed."

    async def test_token_outside_utc_range(self, client: AsyncClient) -> None:
        payload = b"0001-01-01T00:00:00+05:00|v1|"
        token = base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=")
        resp = await client.get("/api/videos", params={"pageToken": token})
        assert resp.status_code == 400

    @pytest.mark.parametrize("size", [0, 101])
    async def test_page_size_out_of_range(self, client: AsyncClient, size: int) -> None:
        resp = await client.get("/api/videos", params={"pageSize": size})
        assert resp.status_code == 422
        assert "between 1 and 100" in resp.json()["detail"]

    async def test_unknown_visibility(self, client: AsyncClient) -> None:
        resp = await client.get("/api/videos", params={"visibility": "hidden"})
        assert resp.status_code == 422

    async def test_unknown_channel(self, client: AsyncClient) -> None:
        resp = await client.get("/api/videos", params={"channelId": "UCnope"})
        assert resp.status_code == 404


class TestRepliesEndpoint:
    async def test_empty_listing(self, client: AsyncClient) -> None:
        resp = await client.get("/api/replies", params={"status": ["pulled", "posted"]})
        assert resp.status_code == 200
        assert resp.json() == {"items": [], "nextPageToken": None}

    async def test_unknown_status(self, client: AsyncClient) -> None:
        resp = await client.get("/api/replies", params={"status": "lost"})
        assert resp.status_code == 422
