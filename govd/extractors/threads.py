"""Threads posts, read from the embed page."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

from govd.context import (
    ContentUnavailableError,
    Extractor,
    ExtractorContext,
    ExtractorError,
    ExtractorResponse,
)
from govd.logs import write_file
from govd.media import Media, MediaCodec, MediaFormat, MediaType
from govd.networking import RequestParams

HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
    ),
    "Accept-Language": "en-GB,en;q=0.9",
    "Cache-Control": "max-age=0",
    "Dnt": "1",
    "Priority": "u=0, i",
    "Sec-Ch-Ua": 'Chromium";v="124", "Google Chrome";v="124", "Not-A.Brand";v="99',
    "Sec-Ch-Ua-Mobile": "?0",
    "Sec-Ch-Ua-Platform": "macOS",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}


def _get(ctx: ExtractorContext) -> ExtractorResponse:
    return ExtractorResponse(media=get_embed_media(ctx))


EXTRACTOR = Extractor(
    id="threads",
    display_name="Threads",
    url_pattern=re.compile(
        r"https://(www\.)?threads\.[^/]+/(?:(?:@[^/]+)/)?p(?:ost)?/(?P<id>[a-zA-Z0-9_-]+)"
    ),
    host=("threads",),
    get_func=_get,
)


def get_embed_media(ctx: ExtractorContext) -> Media:
    """Fetch the embed page of the post and parse its media."""
    embed_url = f"https://www.threads.net/@_/post/{ctx.content_id}/embed"
    with ctx.fetch("GET", embed_url, RequestParams(headers=dict(HEADERS))) as response:
        write_file("threads_embed", response)
        if response.status_code != 200:
            raise ExtractorError(
                f"failed to get embed media: {response.status_code} {response.reason}"
            )
        body = response.content
    return parse_embed_media(ctx, body)


def parse_embed_media(ctx: ExtractorContext, body: bytes) -> Media:
    """Build media from embed HTML: caption, then videos and images per container."""
    if b"Thread not available" in body:
        raise ContentUnavailableError("this content is unavailable")

    media = ctx.new_media()
    soup = BeautifulSoup(body, "html.parser")

    caption = ""
    for container in soup.select(".BodyTextContainer"):
        caption = container.get_text()
    media.set_caption(caption)

    for container in soup.select(".MediaContainer, .SoloMediaContainer"):
        for video in container.find_all("video"):
            source = video.find("source")
            src = source.get("src") if source is not None else None
            if src is not None:
                media.new_item().add_formats(
                    MediaFormat(
                        type=MediaType.VIDEO,
                        format_id="video",
                        url=[src],
                        video_codec=MediaCodec.AVC,
                        audio_codec=MediaCodec.AAC,
                    )
                )
        for image in container.find_all("img"):
            src = image.get("src")
            if src is not None:
                media.new_item().add_formats(
                    MediaFormat(type=MediaType.PHOTO, format_id="image", url=[src])
                )
    return media