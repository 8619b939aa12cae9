import pytest
import responses

from govd.context import ContentUnavailableError, ExtractorContext, ExtractorError
from govd.extractors.threads import EXTRACTOR, get_embed_media, parse_embed_media
from govd.media import MediaType
from govd.networking import ClientOptions, new_http_client

HTML = b"""
<html><body>
<div class="BodyTextContainer">first</div>
<div class="BodyTextContainer">Hello world</div>
<div class="MediaContainer">
  <video><source src="https://cdn.example.com/v.mp4"></video>
  <img src="https://cdn.example.com/p.jpg">
  <img alt="no source">
</div>
<div class="SoloMediaContainer"><img src="https://cdn.example.com/q.jpg"></div>
<img src="https://cdn.example.com/outside.jpg">
</body></html>
"""


def _ctx(content_id="ABC123"):
    return ExtractorContext(
        extractor=EXTRACTOR,
        content_url=f"https://www.threads.net/@user/post/{content_id}",
        content_id=content_id,
        http_client=new_http_client(ClientOptions()),
    )


def test_parse_embed_media_items_in_order():
    media = parse_embed_media(_ctx(), HTML)
    urls = [item.formats[0].url[0] for item in media.items]
    assert urls == [
        "https://cdn.example.com/v.mp4",
        "https://cdn.example.com/p.jpg",
        "https://cdn.example.com/q.jpg",
    ]
    types = [item.formats[0].type for item in media.items]
    assert types == [MediaType.VIDEO, MediaType.PHOTO, MediaType.PHOTO]


def test_parse_embed_media_caption_uses_last_container():
    media = parse_embed_media(_ctx(), HTML)
    assert media.caption == "Hello world"
    assert media.content_id == "ABC123"


def test_parse_embed_media_unavailable():
    with pytest.raises(ContentUnavailableError):
        parse_embed_media(_ctx(), b"<p>Thread not available</p>")


def test_get_embed_media_fetches_embed_page():
    ctx = _ctx()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://www.threads.net/@_/post/ABC123/embed", body=HTML)
        media = get_embed_media(ctx)
    assert len(media.items) == 3


def test_get_embed_media_bad_status():
    ctx = _ctx()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://www.threads.net/@_/post/ABC123/embed", status=500)
        with pytest.raises(ExtractorError):
            get_embed_media(ctx)


def test_extractor_get_func_returns_media():
    ctx = _ctx()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://www.threads.net/@_/post/ABC123/embed", body=HTML)
        result = EXTRACTOR.get_func(ctx)
    assert result.media.items[0].formats[0].format_id == "video"


def test_url_pattern():
    match = EXTRACTOR.url_pattern.search("https://www.threads.net/@someone/post/X_y-1")
    assert match.group("id") == "X_y-1"
    assert EXTRACTOR.url_pattern.search("https://threads.net/p/Q9").group("id") == "Q9"