"""Facebook videos, reels and posts, read from the page HTML."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from govd.context import (
    Extractor,
    ExtractorContext,
    ExtractorError,
    ExtractorResponse,
)
from govd.logs import write_file
from govd.media import Media, MediaCodec, MediaFormat, MediaType
from govd.networking import RequestParams

_HOST = ("facebook",)

WEB_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}


def _progressive_pattern(quality: str) -> re.Pattern[bytes]:
    return re.compile(
        rb'"progressive_url"\s*:\s*"([^"\\]*(?:\\.[^"\\]*)*)"\s*,\s*'
        rb'"failure_reason"\s*:\s*[^,]+\s*,\s*"metadata"\s*:\s*\{\s*'
        rb'"quality"\s*:\s*"' + quality.encode() + rb'"\s*\}'
    )


_HD_URL_PATTERN = _progressive_pattern("HD")
_SD_URL_PATTERN = _progressive_pattern("SD")
_TITLE_PATTERN = re.compile(rb'"title"\s*:\s*\{\s*"text"\s*:\s*"([^"\\]*(?:\\.[^"\\]*)*)"')
_UNICODE_ESCAPE = re.compile(r"\\u([0-9a-fA-F]{4})")
_SECTION_WINDOW = 20000


@dataclass
class VideoData:
    """Video information scraped from a Facebook page."""

    hd_url: str = ""
    sd_url: str = ""
    title: str = ""
    width: int = 0
    height: int = 0


def _share_get(ctx: ExtractorContext) -> ExtractorResponse:
    try:
        final_url = ctx.fetch_location(
            ctx.content_url, RequestParams(headers=dict(WEB_HEADERS))
        )
    except ExtractorError as exc:
        raise ExtractorError(f"failed to follow share redirect: {exc}") from exc
    return ExtractorResponse(url=final_url)


def _get(ctx: ExtractorContext) -> ExtractorResponse:
    return ExtractorResponse(media=get_media(ctx))


SHARE_EXTRACTOR = Extractor(
    id="facebook",
    display_name="Facebook (Share)",
    url_pattern=re.compile(
        r"https?://(?:(?:www|m)\.)?facebook\.com/share/(?:r|v|p)/(?P<id>[a-zA-Z0-9]+)"
    ),
    host=_HOST,
    redirect=True,
    get_func=_share_get,
)

EXTRACTOR = Extractor(
    id="facebook",
    display_name="Facebook",
    url_pattern=re.compile(
        r"https?://(?:(?:www|m|mbasic)\.)?facebook\.com/"
        r"(?:watch/?\?(?:[^&]*&)*v=|(?:reel|videos?|posts?)/|[^/]+/(?:videos|posts|reels?)/)"
        r"(?P<id>[a-zA-Z0-9]+)"
    ),
    host=_HOST,
    get_func=_get,
)


def get_media(ctx: ExtractorContext) -> Media:
    """Scrape the page and build media; authentication cookies are required."""
    if not ctx.http_client.cookies:
        raise ExtractorError("auth cookies are required for facebook")
    try:
        data = get_video_data(ctx)
    except ExtractorError as exc:
        raise ExtractorError(f"failed to get video data: {exc}") from exc
    return build_media(ctx, data)


def build_media(ctx: ExtractorContext, data: VideoData) -> Media:
    """Turn scraped video data into a media item with HD and SD formats."""
    media = ctx.new_media()
    if data.title:
        media.set_caption(data.title)

    formats: list[MediaFormat] = []
    if data.hd_url:
        formats.append(
            MediaFormat(
                format_id="hd",
                type=MediaType.VIDEO,
                video_codec=MediaCodec.AVC,
                audio_codec=MediaCodec.AAC,
                url=[data.hd_url],
                width=data.width,
                height=data.height,
            )
        )
    if data.sd_url:
        formats.append(
            MediaFormat(
                format_id="sd",
                type=MediaType.VIDEO,
                video_codec=MediaCodec.AVC,
                audio_codec=MediaCodec.AAC,
                url=[data.sd_url],
            )
        )
    if not formats:
        raise ExtractorError("no video formats found")

    media.new_item().add_formats(*formats)
    return media


def get_video_data(ctx: ExtractorContext) -> VideoData:
    """Fetch the desktop page of the content and parse its video data."""
    url = ctx.content_url.replace("m.facebook.com", "www.facebook.com", 1)
    url = url.replace("mbasic.facebook.com", "www.facebook.com", 1)

    # Watch pages return the wrong video when scraped; use the reel permalink.
    if "/watch" in url and ctx.content_id:
        url = "https://www.facebook.com/reel/" + ctx.content_id

    with ctx.fetch("GET", url, RequestParams(headers=dict(WEB_HEADERS))) as response:
        write_file("fb_response", response)
        if response.status_code != 200:
            raise ExtractorError(
                f"failed to get page: {response.status_code} {response.reason}"
            )
        body = response.content
    return parse_video_from_body(body, ctx.content_id)


def parse_video_from_body(body: bytes, video_id: str) -> VideoData:
    """Extract progressive URLs and the title from page HTML."""
    data = VideoData()
    section = find_video_section(body, video_id)
    if section is None:
        section = body

    match = _HD_URL_PATTERN.search(section)
    if match:
        data.hd_url = unescape_facebook_url(match.group(1).decode("utf-8", "replace"))
    match = _SD_URL_PATTERN.search(section)
    if match:
        data.sd_url = unescape_facebook_url(match.group(1).decode("utf-8", "replace"))
    match = _TITLE_PATTERN.search(body)
    if match:
        data.title = unescape_unicode(match.group(1).decode("utf-8", "replace"))

    if not data.hd_url and not data.sd_url:
        raise ExtractorError("no video URLs found in page")
    return data


def find_video_section(body: bytes, video_id: str) -> Optional[bytes]:
    """Slice of body holding the delivery data of video_id, or None."""
    if not video_id:
        return None
    start = body.find(b"dash_mpd_debug.mpd?v=" + video_id.encode())
    if start == -1:
        return None
    remaining = body[start:]
    end_marker = b'"id":"' + video_id.encode() + b'"'
    end = remaining.find(end_marker)
    if end > 0:
        return remaining[: end + len(end_marker)]
    return remaining[:_SECTION_WINDOW]


def unescape_facebook_url(s: str) -> str:
    """Undo JSON escaping of slashes and \\uXXXX sequences in a URL."""
    return unescape_unicode(s.replace("\\/", "/"))


def _replace_escape(match: re.Match[str]) -> str:
    code = int(match.group(1), 16)
    if 0xD800 <= code <= 0xDFFF:
        return match.group(0)
    return chr(code)


def unescape_unicode(s: str) -> str:
    """Replace \\uXXXX escapes; surrogates and malformed escapes stay as they are."""
    return _UNICODE_ESCAPE.sub(_replace_escape, s)