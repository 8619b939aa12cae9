"""Extractor definitions and the per-request context they run in."""

from __future__ import annotations

import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

import requests

from govd.logs import logger
from govd.media import DownloadedFormat, Media, MediaFormat
from govd.networking import HTTPClient, RequestParams, new_http_client


class ExtractorError(Exception):
    """Raised when an extractor cannot produce media for a URL."""


class ContentUnavailableError(ExtractorError):
    """The content does not exist or is not available."""


class GeoRestrictedError(ExtractorError):
    """The content cannot be reached from the server's location."""


class AuthenticationNeededError(ExtractorError):
    """The service requires authentication this instance does not have."""


class PaidContentError(ExtractorError):
    """The content needs a subscription."""


class AgeRestrictedError(ExtractorError):
    """The content is age-restricted."""


@dataclass
class ExtractorConfig:
    """Per-extractor settings."""

    is_disabled: bool = False
    ignore_regex: list[re.Pattern[str]] = field(default_factory=list)
    proxy: str = ""
    edge_proxy: str = ""
    download_proxy: str = ""
    disable_proxy: bool = False
    impersonate: bool = False
    instance: list[str] = field(default_factory=list)


@dataclass
class ExtractorResponse:
    """What an extractor returns: a URL to follow, media, or both."""

    url: str = ""
    media: Optional[Media] = None


@dataclass(eq=False)
class Extractor:
    """A site handler: which URLs it matches and how to process them."""

    id: str
    display_name: str
    url_pattern: re.Pattern[str]
    host: tuple[str, ...] = ()
    get_func: Callable[["ExtractorContext"], Optional[ExtractorResponse]] = (
        lambda ctx: None
    )
    hidden: bool = False
    redirect: bool = False


@dataclass
class FilesTracker:
    """Remembers temporary files and directories so they can be removed."""

    files: list[str] = field(default_factory=list)

    def add(self, *args: str) -> None:
        self.files.extend(args)

    def cleanup(self) -> None:
        """Remove every tracked path that still exists and forget them all."""
        for name in self.files:
            path = Path(name)
            if not path.exists():
                continue
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                    logger.debug("removed temporary directory: %s", name)
                else:
                    path.unlink()
                    logger.debug("removed temporary file: %s", name)
            except OSError:
                continue
        self.files = []


DownloadFunc = Callable[["ExtractorContext", int, MediaFormat], DownloadedFormat]


@dataclass
class ExtractorContext:
    """State shared by an extractor while it handles one URL."""

    extractor: Extractor
    content_url: str = ""
    content_id: str = ""
    match_groups: dict[str, str] = field(default_factory=dict)
    http_client: HTTPClient = field(default_factory=new_http_client)
    config: ExtractorConfig = field(default_factory=ExtractorConfig)
    files_tracker: FilesTracker = field(default_factory=FilesTracker)
    chat_id: Optional[int] = None
    download_func: Optional[DownloadFunc] = None

    def _prefix(self) -> str:
        if self.chat_id is not None:
            return f"[{self.content_url}] [{self.chat_id}] {self.extractor.id}: "
        return f"[{self.content_url}] {self.extractor.id}: "

    def _log(self, level: int, message: str, args: tuple[Any, ...]) -> None:
        logger.log(level, self._prefix() + message, *args)

    def debug(self, message: str, *args: Any) -> None:
        self._log(logging.DEBUG, message, args)

    def info(self, message: str, *args: Any) -> None:
        self._log(logging.INFO, message, args)

    def warning(self, message: str, *args: Any) -> None:
        self._log(logging.WARNING, message, args)

    def error(self, message: str, *args: Any) -> None:
        self._log(logging.ERROR, message, args)

    def key(self) -> str:
        """Cache key identifying this content."""
        return f"{self.extractor.id}/{self.content_id}"

    def new_media(self) -> Media:
        return Media(
            content_id=self.content_id,
            content_url=self.content_url,
            extractor_id=self.extractor.id,
        )

    def fetch(
        self, method: str, url: str, params: Optional[RequestParams] = None
    ) -> requests.Response:
        """Send a request with this context's client.

        Raises ExtractorError when the request cannot be sent.
        """
        try:
            return self.http_client.fetch(method, url, params or RequestParams())
        except requests.RequestException as exc:
            raise ExtractorError(f"request failed: {exc}") from exc

    def fetch_location(self, url: str, params: Optional[RequestParams] = None) -> str:
        """Follow redirects from url and return the final URL."""
        with self.fetch("GET", url, params) as response:
            return response.url