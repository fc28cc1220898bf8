# video_recipes/services/ids.py
import re
from typing import Optional

_YT_PATTERNS = (
    re.compile(r"youtube\.com/watch\?(?:[^#\s]*&)?v=([A-Za-z0-9_-]{11})"),
    re.compile(r"youtu\.be/([A-Za-z0-9_-]{11})"),
    re.compile(r"youtube\.com/embed/([A-Za-z0-9_-]{11})"),
    re.compile(r"youtube\.com/shorts/([A-Za-z0-9_-]{11})"),
    re.compile(r"youtube\.com/live/([A-Za-z0-9_-]{11})"),
)

_URL_RE = re.compile(r"https?://[^\s<>\"{}|\\^`\[\]]+")
# Sentence punctuation glued to the end of a URL in free text.
_TRAILING_PUNCT = ".,;:!?)'"


def extract_video_id(url: str) -> Optional[str]:
    """Return the 11-char YouTube video id, or None if no known pattern matches."""
    for pattern in _YT_PATTERNS:
        m = pattern.search(url)
        if m:
            return m.group(1)
    return None


def youtube_watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def extract_urls(text: str) -> list[str]:
    """Extract http(s) URLs from free text, e.g. a video description."""
    if not text:
        return []
    urls: list[str] = []
    for m in _URL_RE.finditer(text):
        url = m.group(0).rstrip(_TRAILING_PUNCT)
        if url:
            urls.append(url)
    return urls
