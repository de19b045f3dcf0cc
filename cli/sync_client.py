"""CLI client for a TubeSync server: register channels, trigger syncs, list videos."""

from __future__ import annotations

import argparse
import os
import sys
from typing import Any
from urllib.parse import urlparse

import httpx

DEFAULT_SERVER = "http://localhost:8000"
_LOCALHOST_HOSTS = {"localhost", "127.0.0.1", "::1"}
_MAX_PAGES = 1000


class TubeSyncClient:
    """Thin HTTP client over the TubeSync API."""

    def __init__(self, server_url: str, timeout: float = 300.0) -> None:
        self.server_url = server_url.rstrip("/")
        self.client = httpx.Client(base_url=self.server_url, timeout=timeout)

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> TubeSyncClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def pull(self, channel_id: str) -> dict[str, Any]:
        """Register or refresh a channel from YouTube."""
        resp = self.client.post(f"/api/channels/pull/{channel_id}")
        resp.raise_for_status()
        result: dict[str, Any] = resp.json()
        return result

    def sync(self, channel_id: str) -> dict[str, Any]:
        """Run a channel sync and return its report."""
        resp = self.client.post(f"/api/channels/{channel_id}/sync")
        resp.raise_for_status()
        result: dict[str, Any] = resp.json()
        return result

    def list_videos(
        self,
        *,
        channel_id: str | None = None,
        title: str | None = None,
        visibility: list[str] | None = None,
        page_size: int | None = None,
        follow: bool = False,
    ) -> list[dict[str, Any]]:
        """Fetch one page of videos, or every page when ``follow`` is set."""
        params: dict[str, Any] = {}
        if channel_id:
            params["channelId"] = channel_id
        if title:
            params["title"] = title
        if visibility:
            params["visibility"] = visibility
        if page_size:
            params["pageSize"] = page_size

        items: list[dict[str, Any]] = []
        page_token: str | None = None
        for _ in range(_MAX_PAGES):
            page_params = dict(params)
            if page_token:
                page_params["pageToken"] = page_token
            resp = self.client.get("/api/videos", params=page_params)
            resp.raise_for_status()
            page = resp.json()
            items.extend(page.get("items", []))
            page_token = page.get("nextPageToken")
            if not follow or not page_token:
                break
        return items


def validate_server_url(server_url: str, allow_insecure_http: bool = False) -> str:
    """Validate server URL and enforce HTTPS for non-localhost hosts by default."""
    normalized = server_url.strip().rstrip("/")
    parsed = urlparse(normalized)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("Server URL must include scheme and host (e.g. https://example.com)")

    hostname = parsed.hostname
    if parsed.scheme == "http" and not allow_insecure_http and hostname not in _LOCALHOST_HOSTS:
        raise ValueError(
            "HTTPS is required for non-localhost servers. "
            "Use --allow-insecure-http only on trusted networks."
        )

    return normalized


def _print_report(report: dict[str, Any]) -> None:
    print(f"Sync report for {report.get('channel_id')}:")
    print(f"  Videos inserted:     {report.get('videos_inserted', 0)}")
    print(f"  Videos updated:      {report.get('videos_updated', 0)}")
    print(f"  Playlists upserted:  {report.get('playlists_upserted', 0)}")
    print(f"  Memberships added:   {report.get('memberships_added', 0)}")
    print(f"  Memberships removed: {report.get('memberships_removed', 0)}")
    for error in report.get("errors", []):
        print(f"  ! {error}")


def _error_detail(exc: httpx.HTTPStatusError) -> str:
    try:
        detail = exc.response.json().get("detail")
    except ValueError:
        detail = None
    return f"{exc.response.status_code} {detail or exc.response.reason_phrase}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tubesync-cli",
        description="Drive a TubeSync server",
    )
    parser.add_argument(
        "--server",
        "-s",
        default=os.environ.get("TUBESYNC_SERVER", DEFAULT_SERVER),
        help=f"Server URL (default: $TUBESYNC_SERVER or {DEFAULT_SERVER})",
    )
    parser.add_argument(
        "--allow-insecure-http",
        action="store_true",
        help="Allow http:// server URLs for non-localhost hosts",
    )

    subparsers = parser.add_subparsers(dest="command")

    pull = subparsers.add_parser("pull", help="Register or refresh a channel")
    pull.add_argument("channel_id")

    sync = subparsers.add_parser("sync", help="Sync a channel's uploads and playlists")
    sync.add_argument("channel_id")

    videos = subparsers.add_parser("videos", help="List cached videos")
    videos.add_argument("--channel", help="Only videos of this channel")
    videos.add_argument("--title", help="Case-insensitive title substring")
    videos.add_argument(
        "--visibility",
        action="append",
        choices=["public", "unlisted", "private", "scheduled"],
        help="Visibility filter (repeatable)",
    )
    videos.add_argument("--page-size", type=int, help="Videos per page")
    videos.add_argument("--all", action="store_true", help="Follow page tokens to the end")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return

    try:
        server_url = validate_server_url(args.server, args.allow_insecure_http)
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    with TubeSyncClient(server_url) as client:
        try:
            if args.command == "pull":
                result = client.pull(args.channel_id)
                channel = result["channel"]
                state = "updated" if result.get("changed") else "unchanged"
                print(f"{channel['channel_id']} {channel['name']} ({state})")
            elif args.command == "sync":
                _print_report(client.sync(args.channel_id))
            elif args.command == "videos":
                items = client.list_videos(
                    channel_id=args.channel,
                    title=args.title,
                    visibility=args.visibility,
                    page_size=args.page_size,
                    follow=args.all,
                )
                for item in items:
                    print(
                        f"{item['published_at']}  {item['video_id']}  "
                        f"[{item['visibility']}]  {item['title']}"
                    )
        except httpx.HTTPStatusError as exc:
            print(f"Error: {_error_detail(exc)}")
            sys.exit(1)
        except httpx.HTTPError as exc:
            print(f"Error: {exc}")
            sys.exit(1)


if __name__ == "__main__":
    main()
