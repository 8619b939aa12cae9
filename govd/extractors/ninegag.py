"""9GAG posts, read from the public post API."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from govd.context import (
    ContentUnavailableError,
    Extractor,
    ExtractorContext,
    ExtractorError,
    ExtractorResponse,
)
from govd.logs import write_file
from govd.media import Media, MediaCodec, MediaFormat, MediaType

API_ENDPOINT = "https://9gag.com/v1/post"
POST_NOT_FOUND = "Post not found"

# Source field of an image variant and the video codec it carries.
_CODEC_FIELDS: tuple[tuple[str, MediaCodec], ...] = (
    ("url", MediaCodec.AVC),
    ("h265_url", MediaCodec.HEVC),
    ("vp8_url", MediaCodec.VP8),
    ("vp9_url", MediaCodec.VP9),
    ("av1_url", MediaCodec.AV1),
)


@dataclass
class ImageVariant:
    """One rendition of a post's media as listed by the API."""

    width: int = 0
    height: int = 0
    url: str = ""
    has_audio: int = 0
    duration: int = 0
    vp8_url: str = ""
    h265_url: str = ""
    vp9_url: str = ""
    av1_url: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ImageVariant":
        return cls(
            width=int(data.get("width") or 0),
            height=int(data.get("height") or 0),
            url=data.get("url") or "",
            has_audio=int(data.get("hasAudio") or 0),
            duration=int(data.get("duration") or 0),
            vp8_url=data.get("vp8Url") or "",
            h265_url=data.get("h265Url") or "",
            vp9_url=data.get("vp9Url") or "",
            av1_url=data.get("av1Url") or "",
        )


@dataclass
class Post:
    """A 9GAG post and its media variants."""

    id: str = ""
    url: str = ""
    title: str = ""
    description: str = ""
    type: str = ""
    nsfw: int = 0
    images: dict[str, ImageVariant] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Post":
        images = {
            name: ImageVariant.from_dict(variant)
            for name, variant in (data.get("images") or {}).items()
            if isinstance(variant, dict)
        }
        return cls(
            id=data.get("id") or "",
            url=data.get("url") or "",
            title=data.get("title") or "",
            description=data.get("description") or "",
            type=data.get("type") or "",
            nsfw=int(data.get("nsfw") or 0),
            images=images,
        )


def _get(ctx: ExtractorContext) -> ExtractorResponse:
    try:
        media = media_from_api(ctx)
    except ExtractorError as exc:
        raise type(exc)(f"failed to get media: {exc}") from exc
    return ExtractorResponse(media=media)


EXTRACTOR = Extractor(
    id="ninegag",
    display_name="9GAG",
    url_pattern=re.compile(r"https?://(?:www\.)?9gag\.com/gag/(?P<id>[^/?&#]+)"),
    host=("9gag",),
    get_func=_get,
)


def media_from_api(ctx: ExtractorContext) -> Media:
    """Build media for the post named by the context."""
    try:
        post = get_post_data(ctx)
    except ExtractorError as exc:
        raise type(exc)(f"failed to get post data: {exc}") from exc

    media = ctx.new_media()
    media.set_caption(post.title)
    if post.nsfw == 1:
        media.set_nsfw()

    item = media.new_item()
    if post.type == "Photo":
        best = find_best_photo(post.images)
        item.add_formats(
            MediaFormat(
                format_id="photo",
                type=MediaType.PHOTO,
                url=[best.url],
                width=best.width,
                height=best.height,
            )
        )
    elif post.type == "Animated":
        item.add_formats(*parse_video_formats(post.images))
    return media


def get_post_data(ctx: ExtractorContext) -> Post:
    """Query the post API for the context's content id."""
    url = API_ENDPOINT + "?id=" + ctx.content_id
    with ctx.fetch("GET", url) as response:
        write_file("9gag_api_response", response)
        if response.status_code != 200:
            raise ExtractorError(f"invalid status code: {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise ExtractorError(f"failed to decode response: {exc}") from exc
    if not isinstance(payload, dict):
        raise ExtractorError("failed to decode response: expected an object")
    return parse_post_response(payload)


def parse_post_response(data: dict[str, Any]) -> Post:
    """Check the API envelope and return the post it holds."""
    meta = data.get("meta")
    if isinstance(meta, dict):
        status = meta.get("status") or ""
        if status != "Success":
            raise ExtractorError(f"API error: {status}")
        if meta.get("errorMessage") == POST_NOT_FOUND:
            raise ContentUnavailableError("this content is unavailable")
    post = (data.get("data") or {}).get("post")
    if not isinstance(post, dict):
        raise ExtractorError("no post data found in response")
    return Post.from_dict(post)


def find_best_photo(images: dict[str, ImageVariant]) -> ImageVariant:
    """Widest JPEG variant."""
    best: Optional[ImageVariant] = None
    max_width = 0
    for photo in images.values():
        if not photo.url.endswith(".jpg"):
            continue
        if photo.width > max_width:
            max_width = photo.width
            best = photo
    if best is None:
        raise ExtractorError("no suitable photo found")
    return best


def parse_video_formats(images: dict[str, ImageVariant]) -> list[MediaFormat]:
    """One format per codec URL of the video variant, with a JPEG thumbnail."""
    video: Optional[ImageVariant] = None
    thumbnail_url = ""
    for variant in images.values():
        if variant.duration > 0:
            video = variant
        if variant.url.endswith(".jpg"):
            thumbnail_url = variant.url
    if video is None:
        raise ExtractorError("no video found")

    formats = []
    for attr, codec in _CODEC_FIELDS:
        url = getattr(video, attr)
        if not url:
            continue
        formats.append(
            MediaFormat(
                format_id="video_" + codec.value,
                type=MediaType.VIDEO,
                video_codec=codec,
                audio_codec=MediaCodec.AAC,
                url=[url],
                width=video.width,
                height=video.height,
                duration=video.duration,
                thumbnail_url=[thumbnail_url] if thumbnail_url else [],
            )
        )
    return formats