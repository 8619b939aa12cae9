"""TikTok videos and photo slides, read from the web page."""

from __future__ import annotations

import json
import re
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

from govd.context import (
    AuthenticationNeededError,
    ContentUnavailableError,
    Extractor,
    ExtractorContext,
    ExtractorError,
    ExtractorResponse,
    GeoRestrictedError,
)
from govd.logs import write_file
from govd.media import DownloadSettings, Media, MediaCodec, MediaFormat, MediaType
from govd.networking import RequestParams

VIDEO_URL_BASE = "https://www.tiktok.com/@_/video/"
_ATTEMPTS = 5

_UNIVERSAL_DATA_PATTERN = re.compile(
    rb'<script[^>]+\bid="__UNIVERSAL_DATA_FOR_REHYDRATION__"[^>]*>(.*?)</script>'
)

WEB_HEADERS = {
    "Host": "www.tiktok.com",
    "Connection": "keep-alive",
    "User-Agent": "Mozilla/5.0",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-us,en;q=0.5",
    "Sec-Fetch-Mode": "navigate",
}


def resolve_short_link(ctx: ExtractorContext) -> ExtractorResponse:
    """Follow a short link, bypassing the login wall used for geo restrictions."""
    redirect_url = ctx.fetch_location(ctx.content_url)
    parts = urlsplit(redirect_url)
    if parts.path == "/login":
        ctx.debug("tiktok is geo restricted in your region, attemping bypass...")
        real_url = parse_qs(parts.query).get("redirect_url", [""])[0]
        if not real_url:
            raise GeoRestrictedError(
                "this content has geo-restrictions and cannot be accessed"
            )
        return ExtractorResponse(url=real_url)
    return ExtractorResponse(url=redirect_url)


def _get(ctx: ExtractorContext) -> ExtractorResponse:
    return ExtractorResponse(url=ctx.content_url, media=get_media(ctx))


VM_EXTRACTOR = Extractor(
    id="tiktok",
    display_name="TikTok VM",
    url_pattern=re.compile(
        r"https://((?:vm|vt|www)\.)?(vx)?tiktok\.com/(?:t/)?(?P<id>[a-zA-Z0-9-]+)"
    ),
    host=("tiktok", "vxtiktok"),
    redirect=True,
    get_func=resolve_short_link,
)

EXTRACTOR = Extractor(
    id="tiktok",
    display_name="TikTok",
    url_pattern=re.compile(
        r"https?://((www|m)\.)?(vx)?tiktok\.com/((?:embed|@[\w\.-]*)/)?"
        r"(v(ideo)?|p(hoto)?)/(?P<id>[0-9]+)"
    ),
    host=("tiktok", "vxtiktok"),
    get_func=_get,
)


def get_media(ctx: ExtractorContext) -> Media:
    """Build media from the web page, retrying when a login page comes back."""
    last_error: Optional[ExtractorError] = None
    for _ in range(_ATTEMPTS):
        try:
            details, cookies = get_video_web(ctx)
            break
        except ExtractorError as exc:
            last_error = exc
    else:
        assert last_error is not None
        raise type(last_error)(f"failed to get from web: {last_error}") from last_error

    media = ctx.new_media()
    media.set_caption(details.get("desc") or "")

    image_post = details.get("imagePost")
    if image_post is None:
        video = details.get("video") or {}
        play_addr = video.get("PlayAddrStruct")
        if not isinstance(play_addr, dict):
            raise ContentUnavailableError("this content is unavailable")
        media.new_item().add_formats(
            MediaFormat(
                type=MediaType.VIDEO,
                format_id=play_addr.get("Uri") or "",
                url=list(play_addr.get("UrlList") or []),
                video_codec=MediaCodec.AVC,
                audio_codec=MediaCodec.AAC,
                width=int(play_addr.get("Width") or 0),
                height=int(play_addr.get("Height") or 0),
                duration=int(video.get("duration") or 0),
                # the cookies of the page avoid a 403 on the video
                download_settings=DownloadSettings(cookies=cookies),
            )
        )
        return media

    for image in image_post.get("images") or []:
        urls = ((image or {}).get("imageURL") or {}).get("urlList") or []
        media.new_item().add_formats(
            MediaFormat(type=MediaType.PHOTO, format_id="image", url=list(urls))
        )
    return media


def get_video_web(ctx: ExtractorContext) -> tuple[dict[str, Any], dict[str, str]]:
    """Fetch the video page; return its item data and the cookies it set."""
    with ctx.fetch(
        "GET",
        VIDEO_URL_BASE + ctx.content_id,
        RequestParams(headers=dict(WEB_HEADERS)),
    ) as response:
        if urlsplit(response.url).path == "/login":
            raise AuthenticationNeededError(
                "this instance is not authenticated with this service"
            )
        body = response.content
        cookies = {cookie.name: cookie.value or "" for cookie in response.cookies}
    try:
        item = parse_universal_data(body)
    except ExtractorError as exc:
        raise type(exc)(f"failed to parse universal data: {exc}") from exc
    return item, cookies


def parse_universal_data(body: bytes) -> dict[str, Any]:
    """Return the item structure embedded in a video page."""
    match = _UNIVERSAL_DATA_PATTERN.search(body)
    if match is None:
        raise ExtractorError("universal data not found")
    try:
        data = json.loads(match.group(1))
    except ValueError as exc:
        raise ExtractorError(f"failed to unmarshal universal data: {exc}") from exc
    write_file("tt_universal_data", data)

    default_scope = traverse_json(data, "__DEFAULT_SCOPE__")
    if default_scope is None:
        raise ExtractorError("default scope not found")
    write_file("tt_default_scope", default_scope)

    item = traverse_json(default_scope, "itemStruct")
    if item is None:
        raise ContentUnavailableError("this content is unavailable")
    write_file("tt_item_struct", item)
    if not isinstance(item, dict):
        raise ExtractorError("failed to unmarshal item struct")
    return item


def traverse_json(data: Any, key: str) -> Any:
    """First value stored under key anywhere in nested dicts and lists, or None."""
    if isinstance(data, dict):
        if key in data:
            return data[key]
        children = data.values()
    elif isinstance(data, list):
        children = data
    else:
        return None
    for child in children:
        found = traverse_json(child, key)
        if found is not None:
            return found
    return None