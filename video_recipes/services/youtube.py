from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import httpx
import yt_dlp
from starlette.concurrency import run_in_threadpool
from youtube_transcript_api import (
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    TranscriptsDisabled,
    YouTubeTranscriptApi,
)

from video_recipes.app.domain.models import VideoMetadata
from video_recipes.services.errors import (
    FetchFailedError,
    NetworkTimeoutError,
    PrivateOrUnavailableError,
    TranscriptUnavailableError,
)
from video_recipes.services.ids import youtube_watch_url

logger = logging.getLogger(__name__)

DATA_API_URL = "https://www.googleapis.com/youtube/v3/videos"
VTT_TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")
PRIORITY_LANGUAGES = ("en", "en-US", "en-GB")
VTT_SKIP_PREFIXES = ("NOTE", "STYLE", "REGION", "WEBVTT")
DATA_API_TIMEOUT_SECONDS = 10.0
VTT_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class CaptionSource:
    url: str
    language: str
    extension: str


def _clean_string(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _create_ydl_options() -> dict:
    return {
        "quiet": True,
        "noprogress": True,
        "skip_download": True,
        "check_formats": False,
        "extractor_args": {"youtube": {"player_client": ["android"]}},
    }


def _check_video_availability(info: dict) -> None:
    is_private = info.get("is_private")
    availability = info.get("availability")
    if is_private or availability in {"private", "needs_auth"}:
        raise PrivateOrUnavailableError("Video is private or requires login.")


# =============================================================================
# Metadata
# =============================================================================

def _metadata_from_snippet(video_id: str, snippet: dict) -> VideoMetadata:
    tags = snippet.get("tags")
    return VideoMetadata(
        video_id=video_id,
        title=_clean_string(snippet.get("title")) or video_id,
        description=snippet.get("description") or "",
        channel=_clean_string(snippet.get("channelTitle")) or "Unknown",
        tags=tuple(t for t in tags if isinstance(t, str)) if isinstance(tags, list) else (),
    )


async def _fetch_via_data_api(video_id: str, api_key: str) -> VideoMetadata:
    params = {"part": "snippet", "id": video_id, "key": api_key}
    try:
        async with httpx.AsyncClient(timeout=DATA_API_TIMEOUT_SECONDS) as client:
            response = await client.get(DATA_API_URL, params=params)
            response.raise_for_status()
            data = response.json()
    except httpx.TimeoutException as error:
        raise NetworkTimeoutError(DATA_API_URL, DATA_API_TIMEOUT_SECONDS) from error
    except (httpx.HTTPError, ValueError) as error:
        raise FetchFailedError(f"YouTube Data API request failed: {error}") from error

    items = data.get("items") if isinstance(data, dict) else None
    if not items:
        raise PrivateOrUnavailableError(f"Video not found: {video_id}")
    return _metadata_from_snippet(video_id, items[0].get("snippet") or {})


def _extract_info(video_id: str) -> dict:
    with yt_dlp.YoutubeDL(_create_ydl_options()) as ydl:
        info = ydl.extract_info(youtube_watch_url(video_id), download=False)
    if not info:
        raise PrivateOrUnavailableError(f"Video not found: {video_id}")
    _check_video_availability(info)
    return info


async def _fetch_via_ytdlp(video_id: str) -> VideoMetadata:
    try:
        info = await run_in_threadpool(_extract_info, video_id)
    except PrivateOrUnavailableError:
        raise
    except yt_dlp.utils.DownloadError as error:
        raise FetchFailedError(f"Could not resolve video {video_id}: {error}") from error
    except (ConnectionError, TimeoutError) as error:
        raise FetchFailedError(f"Network error resolving video {video_id}: {error}") from error

    tags = info.get("tags")
    return VideoMetadata(
        video_id=video_id,
        title=_clean_string(info.get("title")) or video_id,
        description=info.get("description") or "",
        channel=_clean_string(info.get("channel")) or _clean_string(info.get("uploader")) or "Unknown",
        tags=tuple(t for t in tags if isinstance(t, str)) if isinstance(tags, list) else (),
    )


async def fetch_video_metadata(video_id: str, api_key: str = "") -> VideoMetadata:
    """Data API v3 when a key is available, yt-dlp extraction otherwise."""
    if api_key:
        try:
            return await _fetch_via_data_api(video_id, api_key)
        except PrivateOrUnavailableError:
            raise
        except (FetchFailedError, NetworkTimeoutError) as error:
            logger.info("YouTube Data API unavailable (%s), falling back to yt-dlp", error)
    return await _fetch_via_ytdlp(video_id)


# =============================================================================
# Transcript
# =============================================================================

def _fetch_transcript_data(video_id: str) -> list[dict] | None:
    try:
        fetched = YouTubeTranscriptApi().fetch(video_id, languages=list(PRIORITY_LANGUAGES))
    except (TranscriptsDisabled, NoTranscriptFound):
        return None
    except CouldNotRetrieveTranscript as error:
        logger.info("Transcript API refused %s: %s", video_id, type(error).__name__)
        return None
    except (ConnectionError, TimeoutError) as error:
        logger.warning("Network error fetching transcript: %s", error)
        return None
    return fetched.to_raw_data()


def _pick_caption_source(submap: dict | None) -> CaptionSource | None:
    if not submap:
        return None

    for lang in PRIORITY_LANGUAGES:
        entries = submap.get(lang)
        if not entries:
            continue

        vtt_entry = _find_vtt_entry(entries)
        if vtt_entry:
            return CaptionSource(url=vtt_entry, language=lang, extension="vtt")

    return None


def _find_vtt_entry(entries: list) -> str | None:
    for item in entries:
        if item.get("ext") == "vtt" and item.get("url"):
            return item.get("url")
    return None


def _is_vtt_content_line(line: str) -> bool:
    if not line:
        return False
    if line.startswith(VTT_SKIP_PREFIXES):
        return False
    if "-->" in line:
        return False
    if line.isdigit():
        return False
    return True


def vtt_to_plain_text(content: str) -> str:
    in_header = True
    in_note_block = False
    text_lines: list[str] = []

    for raw_line in content.splitlines():
        stripped = raw_line.strip()

        # Header runs from WEBVTT to the first blank line (Kind:, Language:, ...)
        if in_header:
            if not stripped:
                in_header = False
            continue

        if in_note_block:
            if not stripped:
                in_note_block = False
            continue

        if stripped.startswith("NOTE"):
            in_note_block = True
            continue

        if not _is_vtt_content_line(stripped):
            continue

        cleaned = VTT_TAG_PATTERN.sub("", stripped).strip()
        # Auto captions repeat the previous line as the next cue rolls in.
        if cleaned and (not text_lines or text_lines[-1] != cleaned):
            text_lines.append(cleaned)

    joined = " ".join(text_lines)
    return WHITESPACE_PATTERN.sub(" ", joined).strip()


async def _download_vtt_as_text(url: str, timeout: float = VTT_TIMEOUT_SECONDS) -> str:
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            return vtt_to_plain_text(response.text)
    except httpx.TimeoutException as error:
        raise NetworkTimeoutError(url, timeout) from error
    except httpx.HTTPError as error:
        raise FetchFailedError(f"HTTP error downloading VTT: {error}") from error


async def _caption_text_via_ytdlp(video_id: str) -> str | None:
    try:
        info = await run_in_threadpool(_extract_info, video_id)
    except (PrivateOrUnavailableError, yt_dlp.utils.DownloadError) as error:
        logger.info("No caption tracks for %s: %s", video_id, error)
        return None

    for key in ("subtitles", "automatic_captions"):
        source = _pick_caption_source(info.get(key))
        if not source:
            continue
        try:
            return await _download_vtt_as_text(source.url)
        except (NetworkTimeoutError, FetchFailedError) as error:
            logger.info("Caption download failed (%s): %s", source.language, error)
            continue

    return None


async def fetch_transcript(video_id: str) -> str:
    """Plain-text transcript of the video.

    Raises:
        TranscriptUnavailableError: neither the transcript API nor the caption
            tracks produced any text.
    """
    data = await run_in_threadpool(_fetch_transcript_data, video_id)
    if data:
        text = " ".join(
            item.get("text", "").strip() for item in data if item.get("text")
        ).strip()
        if text:
            return WHITESPACE_PATTERN.sub(" ", text)

    text = await _caption_text_via_ytdlp(video_id)
    if text:
        return text

    raise TranscriptUnavailableError(f"No transcript available for video {video_id}")
