# govd

govd takes a link to a post on a social platform and finds the media behind it.
It returns the downloadable formats with their codecs, sizes and resolutions.

Supported sources:

- Facebook videos, reels and posts (`govd.extractors.facebook`), including
  share links. Authentication cookies are required.
- Threads posts, read from the embed page (`govd.extractors.threads`).
- 9GAG posts, read from the post API (`govd.extractors.ninegag`).
- TikTok videos and photo slides (`govd.extractors.tiktok`), including short
  links.

## Installation

```
pip install .
```

## Usage

Each extractor module exposes an `Extractor` object (`EXTRACTOR`, and for
share or short links `SHARE_EXTRACTOR` or `VM_EXTRACTOR`). An extractor has a
`url_pattern` with an `id` group and a `get_func` that takes an
`ExtractorContext`.

```python
from govd.context import ExtractorContext
from govd.extractors import ninegag

url = "https://9gag.com/gag/aXYZ123"
match = ninegag.EXTRACTOR.url_pattern.search(url)
ctx = ExtractorContext(
    extractor=ninegag.EXTRACTOR,
    content_url=match.group(0),
    content_id=match.group("id"),
    match_groups={k: v for k, v in match.groupdict().items() if v},
)
response = ninegag.EXTRACTOR.get_func(ctx)
for item in response.media.items:
    best = item.get_default_format()
    print(best.describe(), best.url)
```

Extractors with `redirect=True` return an `ExtractorResponse` that holds only
a `url`. Match that URL against the other extractors yourself.

Failures raise `govd.context.ExtractorError` or one of its subclasses:
`ContentUnavailableError`, `GeoRestrictedError`, `AuthenticationNeededError`,
`PaidContentError` or `AgeRestrictedError`.

### HTTP clients

`govd.networking.new_http_client(ClientOptions(...))` builds the client a
context uses. `ClientOptions` can set headers and cookies. It can also route
requests in one of these ways:

- through a `proxy`;
- through an `edge_proxy`, which relays each request as `?url=...` and reads
  back a JSON description of the response;
- with no proxy taken from the environment (`disable_proxy`).

`impersonate` switches to a session with browser-like TLS settings.
`HTTPClient.as_download_client()` gives a client that uses `download_proxy`.

### Working with media

- `Media` holds a caption, an NSFW flag and a list of `MediaItem`s.
- `MediaItem.get_default_format()` prefers video, AVC first, by bitrate and
  then height. It falls back to AAC or MP3 audio, then to photos.
- `MediaFormat.get_info()` gives the file extension and how the file should be
  sent: as a photo, video, audio or document.
- `MediaFormat.get_file_name()` gives a fresh unique file name.
- `FilesTracker` records temporary paths, and `cleanup()` removes them.

### Debug dumps

`govd.logs.setup(log_dir)` sets up logging to the console and to `app.log` in
that directory. After `set_level("DEBUG")`, `write_file(name, content)` saves
raw responses to the log directory and returns the path it wrote. JSON content
is saved as `.json` and pretty-printed. Anything else is saved as `.txt`.

## What this package does not do

- It has no lookup that picks an extractor for an arbitrary URL. It also does
  not follow share or short links from one extractor to the next. You match
  the URL patterns yourself.
- It does not download media files. It only describes the formats and their
  URLs.
- It has no command-line program, chat bot or storage. Only the sites listed
  above are supported.

## Running the tests

```
pip install .[test]
pytest
```