"""Media descriptions: items, formats and the choice of a default format."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional


class FileType(str, Enum):
    """Kind of message a downloaded file is sent as."""

    DOCUMENT = "document"
    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"


class FileExtension(str, Enum):
    """File extensions given to downloaded files."""

    MP4 = "mp4"
    WEBM = "webm"
    MP3 = "mp3"
    M4A = "m4a"
    FLAC = "flac"
    OGG = "oga"
    JPEG = "jpeg"
    WEBP = "webp"
    JPG = "jpg"
    GIF = "gif"
    OGV = "ogv"
    AVI = "avi"
    MKV = "mkv"
    MOV = "mov"


class ImageFormat(str, Enum):
    """Image formats recognised when converting pictures."""

    JPEG = "jpeg"
    PNG = "png"
    GIF = "gif"
    HEIF = "heif"
    WEBP = "webp"


class MediaType(str, Enum):
    """Kind of content a format carries."""

    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"


class MediaCodec(str, Enum):
    """Audio and video codecs."""

    AVC = "avc"
    HEVC = "hevc"
    VP8 = "vp8"
    VP9 = "vp9"
    AV1 = "av1"
    WEBP = "webp"
    AAC = "aac"
    MP3 = "mp3"
    OPUS = "opus"
    FLAC = "flac"
    VORBIS = "vorbis"


@dataclass
class DecryptionKey:
    """AES key material for encrypted HLS segments."""

    key: bytes = b""
    iv: bytes = b""
    method: str = ""
    media_sequence: int = 0


@dataclass
class DownloadSettings:
    """Per-format download tuning."""

    num_connections: int = 0
    chunk_size: int = 0
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    decryption_key: Optional[DecryptionKey] = None
    retries: int = 0


@dataclass
class SendFormatsOptions:
    """Options used when sending downloaded formats to a chat."""

    caption: str = ""
    is_spoiler: bool = False
    is_stored: bool = False
    delete: bool = False


@dataclass
class Plugin:
    """Post-processing step run on a downloaded format; raises on failure."""

    id: str
    run: Callable[[Any, "MediaItem", "DownloadedFormat"], None]


_KB = 1024
_MB = _KB * 1024
_GB = _MB * 1024

_CODEC_INFO: dict[
    tuple[Optional[MediaCodec], Optional[MediaCodec]], tuple[FileExtension, FileType]
] = {
    (MediaCodec.AVC, MediaCodec.AAC): (FileExtension.MP4, FileType.VIDEO),
    (MediaCodec.AVC, MediaCodec.MP3): (FileExtension.MP4, FileType.VIDEO),
    (MediaCodec.HEVC, MediaCodec.AAC): (FileExtension.MP4, FileType.DOCUMENT),
    (MediaCodec.HEVC, MediaCodec.MP3): (FileExtension.MP4, FileType.DOCUMENT),
    (MediaCodec.AVC, None): (FileExtension.MP4, FileType.VIDEO),
    (MediaCodec.HEVC, None): (FileExtension.MP4, FileType.DOCUMENT),
    (MediaCodec.WEBP, None): (FileExtension.WEBP, FileType.VIDEO),
    (None, MediaCodec.MP3): (FileExtension.MP3, FileType.AUDIO),
    (None, MediaCodec.AAC): (FileExtension.M4A, FileType.AUDIO),
    (None, MediaCodec.FLAC): (FileExtension.FLAC, FileType.DOCUMENT),
    (None, MediaCodec.VORBIS): (FileExtension.OGG, FileType.DOCUMENT),
}


@dataclass
class MediaFormat:
    """One downloadable rendition of a media item."""

    format_id: str = ""
    file_id: str = ""
    type: Optional[MediaType] = None
    audio_codec: Optional[MediaCodec] = None
    video_codec: Optional[MediaCodec] = None
    file_size: int = 0
    duration: int = 0
    title: str = ""
    artist: str = ""
    width: int = 0
    height: int = 0
    bitrate: int = 0
    url: list[str] = field(default_factory=list)
    thumbnail_url: list[str] = field(default_factory=list)
    download_settings: Optional[DownloadSettings] = None
    plugins: list[Plugin] = field(default_factory=list)
    init_segment: str = ""
    segments: list[str] = field(default_factory=list)
    decryption_key: Optional[DecryptionKey] = None

    def get_info(self) -> tuple[FileExtension, FileType]:
        """Return the file extension and the kind of message to send."""
        if self.type == MediaType.PHOTO:
            # Photos may not exceed 10000 in width + height nor a 20:1 ratio.
            w, h = self.width, self.height
            if w > 0 and h > 0:
                if w + h > 10000 or max(w, h) > min(w, h) * 20:
                    return FileExtension.JPEG, FileType.DOCUMENT
            return FileExtension.JPEG, FileType.PHOTO
        return _CODEC_INFO.get(
            (self.video_codec, self.audio_codec),
            (FileExtension.WEBM, FileType.DOCUMENT),
        )

    def describe(self) -> str:
        """Return a one-line summary of the format."""
        type_name = self.type.value if self.type is not None else ""
        parts = [f"id: {self.format_id}", f"type: {type_name}"]
        if self.width and self.height:
            parts.append(f"resolution: {self.width}x{self.height}")
        duration = self._format_duration()
        if duration:
            parts.append(f"duration: {duration}")
        if self.video_codec is not None:
            parts.append(f"video: {self.video_codec.value}")
        if self.audio_codec is not None:
            parts.append(f"audio: {self.audio_codec.value}")
        bitrate = self._format_bitrate()
        if bitrate:
            parts.append(f"bitrate: {bitrate}")
        size = self._format_file_size()
        if size:
            parts.append(f"size: {size}")
        return "[" + ", ".join(parts) + "]"

    def __str__(self) -> str:
        return self.describe()

    def get_file_name(self) -> str:
        """Return a fresh, unique file name for this format."""
        ext, _ = self.get_info()
        if self.type == MediaType.AUDIO and self.title and self.artist:
            artist = self.artist.replace("/", " ")
            title = self.title.replace("/", " ")
            uid = str(uuid.uuid4())[:8].upper()
            return f"{artist} - {title} [{uid}].{ext.value}"
        return f"{uuid.uuid4().hex}.{ext.value}"

    def missing_metadata(self) -> bool:
        """Whether a video lacks width, height or duration."""
        if self.type == MediaType.VIDEO:
            return not self.width or not self.height or not self.duration
        return False

    def _format_duration(self) -> str:
        seconds = self.duration
        if not seconds:
            return ""
        hours, rest = divmod(seconds, 3600)
        minutes, secs = divmod(rest, 60)
        if hours > 0:
            return f"{hours}:{minutes:02d}:{secs:02d}"
        if minutes > 0:
            return f"{minutes}:{secs:02d}"
        return f"{secs}s"

    def _format_bitrate(self) -> str:
        if not self.bitrate:
            return ""
        kbps = self.bitrate / 1000
        if kbps >= 1000:
            return f"{kbps / 1000:.1f}Mbps"
        return f"{kbps:.0f}kbps"

    def _format_file_size(self) -> str:
        size = self.file_size
        if not size:
            return ""
        if size >= _GB:
            return f"{size / _GB:.2f}GB"
        if size >= _MB:
            return f"{size / _MB:.1f}MB"
        if size >= _KB:
            return f"{size / _KB:.0f}KB"
        return f"{size}B"


@dataclass
class MediaItem:
    """A single piece of content, available in one or more formats."""

    formats: list[MediaFormat] = field(default_factory=list)

    def add_formats(self, *args: MediaFormat) -> None:
        self.formats.extend(args)

    def get_format_by_id(self, format_id: str) -> Optional[MediaFormat]:
        return next((f for f in self.formats if f.format_id == format_id), None)

    def get_default_format(self) -> Optional[MediaFormat]:
        """Prefer video, then audio, then photo."""
        return (
            self.get_default_video_format()
            or self.get_default_audio_format()
            or self.get_default_photo_format()
        )

    def get_default_video_format(self) -> Optional[MediaFormat]:
        """Best video format, AVC first, by bitrate then height."""
        candidates = self.filter_formats(lambda f: f.video_codec == MediaCodec.AVC)
        if not candidates:
            candidates = self.filter_formats(lambda f: f.video_codec is not None)
        if not candidates:
            return None
        return min(candidates, key=lambda f: (-f.bitrate, -f.height))

    def get_default_audio_format(self) -> Optional[MediaFormat]:
        """Highest-bitrate audio-only format, AAC or MP3 first."""
        candidates = self.filter_formats(
            lambda f: f.video_codec is None
            and f.audio_codec in (MediaCodec.AAC, MediaCodec.MP3)
        )
        if not candidates:
            candidates = self.filter_formats(
                lambda f: f.video_codec is None and f.audio_codec is not None
            )
        if not candidates:
            return None
        return max(candidates, key=lambda f: f.bitrate)

    def get_default_photo_format(self) -> Optional[MediaFormat]:
        return next((f for f in self.formats if f.type == MediaType.PHOTO), None)

    def filter_formats(
        self, condition: Callable[[MediaFormat], bool]
    ) -> list[MediaFormat]:
        return [f for f in self.formats if condition(f)]


@dataclass
class Media:
    """Everything extracted from one URL."""

    content_id: str = ""
    content_url: str = ""
    extractor_id: str = ""
    caption: str = ""
    nsfw: bool = False
    items: list[MediaItem] = field(default_factory=list)

    def new_item(self) -> MediaItem:
        item = MediaItem()
        self.items.append(item)
        return item

    def set_caption(self, caption: str) -> None:
        """Set the caption unless one is already set."""
        if not self.caption:
            self.caption = caption

    def set_nsfw(self) -> None:
        self.nsfw = True


@dataclass
class DownloadedFormat:
    """A format after download, with the local paths it was saved to."""

    format: MediaFormat
    index: int = 0
    file_path: str = ""
    thumbnail_file_path: str = ""
    error: Optional[Exception] = None


@dataclass
class TaskResult:
    """Outcome of processing one media request."""

    media: Optional[Media] = None
    formats: list[DownloadedFormat] = field(default_factory=list)
    is_stored: bool = False