import json

import pytest
import responses

from govd.context import ExtractorContext, ExtractorError
from govd.extractors import facebook
from govd.extractors.facebook import (
    EXTRACTOR,
    SHARE_EXTRACTOR,
    VideoData,
    build_media,
    find_video_section,
    get_media,
    parse_video_from_body,
    unescape_facebook_url,
    unescape_unicode,
)
from govd.media import MediaCodec, MediaType
from govd.networking import ClientOptions, new_http_client


def _ctx(url, content_id, cookies=None, extractor=EXTRACTOR):
    return ExtractorContext(
        extractor=extractor,
        content_url=url,
        content_id=content_id,
        http_client=new_http_client(ClientOptions(cookies=cookies or {})),
    )


def _entry(url, quality):
    return (
        f'"progressive_url":"{url}","failure_reason":null,'
        f'"metadata":{{"quality":"{quality}"}}'
    )


def test_unescape_unicode_matches_json():
    text = "caf\u00e9 \u2603 ok"
    escaped = json.dumps(text)[1:-1]
    assert unescape_unicode(escaped) == text


@pytest.mark.parametrize("value", ["\\ud83d", "\\u12zz", "\\u004", "plain"])
def test_unescape_unicode_leaves_invalid_escapes(value):
    assert unescape_unicode(value) == value


def test_unescape_facebook_url():
    assert (
        unescape_facebook_url("https:\\/\\/video.example.com\\/v.mp4?a=1\\u0026b=2")
        == "https://video.example.com/v.mp4?a=1&b=2"
    )


def test_find_video_section_bounds():
    body = b'xx dash_mpd_debug.mpd?v=42 stuff "id":"42" tail'
    section = find_video_section(body, "42")
    assert section.startswith(b"dash_mpd_debug.mpd?v=42")
    assert section.endswith(b'"id":"42"')


def test_find_video_section_missing():
    body = b'dash_mpd_debug.mpd?v=42 "id":"42"'
    assert find_video_section(body, "") is None
    assert find_video_section(body, "7") is None


def test_find_video_section_window():
    long_body = b"dash_mpd_debug.mpd?v=9" + b"a" * 30000
    assert len(find_video_section(long_body, "9")) == 20000
    short_body = b"pre dash_mpd_debug.mpd?v=9 rest"
    assert find_video_section(short_body, "9") == b"dash_mpd_debug.mpd?v=9 rest"


def test_parse_video_from_body_picks_section():
    body = (
        "dash_mpd_debug.mpd?v=111 "
        + _entry("https:\\/\\/a.example.com\\/sd1.mp4", "SD")
        + ' "id":"111" dash_mpd_debug.mpd?v=222 '
        + _entry("https:\\/\\/a.example.com\\/hd2.mp4", "HD")
        + ","
        + _entry("https:\\/\\/a.example.com\\/sd2.mp4", "SD")
        + ' "id":"222" "title":{"text":"Clip \\u00e9"}'
    ).encode()

    second = parse_video_from_body(body, "222")
    assert second.hd_url == "https://a.example.com/hd2.mp4"
    assert second.sd_url == "https://a.example.com/sd2.mp4"
    assert second.title == "Clip \u00e9"

    first = parse_video_from_body(body, "111")
    assert first.hd_url == ""
    assert first.sd_url == "https://a.example.com/sd1.mp4"


def test_parse_video_from_body_without_urls():
    with pytest.raises(ExtractorError):
        parse_video_from_body(b"<html>nothing</html>", "1")


def test_build_media_requires_urls():
    ctx = _ctx("https://www.facebook.com/reel/1", "1")
    with pytest.raises(ExtractorError):
        build_media(ctx, VideoData())


def test_build_media_formats():
    ctx = _ctx("https://www.facebook.com/reel/1", "1")
    data = VideoData(hd_url="https://a.example.com/hd", sd_url="https://a.example.com/sd", title="T")
    media = build_media(ctx, data)
    formats = media.items[0].formats
    assert [f.format_id for f in formats] == ["hd", "sd"]
    assert all(f.type == MediaType.VIDEO for f in formats)
    assert formats[0].video_codec == MediaCodec.AVC
    assert media.caption == "T"


def test_get_media_requires_cookies():
    ctx = _ctx("https://www.facebook.com/reel/1", "1")
    with pytest.raises(ExtractorError, match="cookies"):
        get_media(ctx)


def test_get_media_fetches_desktop_page():
    ctx = _ctx("https://m.facebook.com/reel/123", "123", cookies={"c_user": "token"})
    body = _entry("https:\\/\\/a.example.com\\/hd.mp4", "HD")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://www.facebook.com/reel/123", body=body)
        media = get_media(ctx)
    assert media.items[0].formats[0].url == ["https://a.example.com/hd.mp4"]
    assert media.extractor_id == "facebook"


def test_get_media_converts_watch_url():
    ctx = _ctx("https://www.facebook.com/watch/?v=999", "999", cookies={"c_user": "token"})
    body = _entry("https:\\/\\/a.example.com\\/sd.mp4", "SD")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://www.facebook.com/reel/999", body=body)
        media = get_media(ctx)
    assert media.items[0].formats[0].format_id == "sd"


def test_get_media_bad_status():
    ctx = _ctx("https://www.facebook.com/reel/5", "5", cookies={"c_user": "token"})
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://www.facebook.com/reel/5", status=404)
        with pytest.raises(ExtractorError):
            get_media(ctx)


def test_url_patterns():
    match = EXTRACTOR.url_pattern.search("https://www.facebook.com/watch/?v=987")
    assert match.group("id") == "987"
    match = EXTRACTOR.url_pattern.search("https://facebook.com/someone/videos/555")
    assert match.group("id") == "555"
    share = SHARE_EXTRACTOR.url_pattern.search("https://m.facebook.com/share/r/AbC1")
    assert share.group("id") == "AbC1"
    assert SHARE_EXTRACTOR.redirect is True


def test_share_extractor_follows_redirect():
    ctx = _ctx("https://www.facebook.com/share/r/AbC1", "AbC1", extractor=SHARE_EXTRACTOR)
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            "https://www.facebook.com/share/r/AbC1",
            status=302,
            headers={"Location": "https://www.facebook.com/reel/321"},
        )
        rsps.add(responses.GET, "https://www.facebook.com/reel/321", body="page")
        result = facebook.SHARE_EXTRACTOR.get_func(ctx)
    assert result.url == "https://www.facebook.com/reel/321"