"""
Podcast RSS feed validation and episode listing.
"""
import logging
from typing import Any, Dict, List
from urllib.parse import urlparse

import feedparser
import requests

from .constants import RECENT_EPISODE_LIMIT
from .errors import RSSError

logger = logging.getLogger("marketplace")

FETCH_TIMEOUT = 15
USER_AGENT = "UvoCollab-FeedReader/1.0"


def fetch_feed(url: str) -> feedparser.FeedParserDict:
    """Download and parse a feed. Raises RSSError when it cannot be read."""
    try:
        response = requests.get(url, timeout=FETCH_TIMEOUT, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        logger.warning(f"[RSS] fetch failed for {url}: {e}")
        raise RSSError("Unable to fetch RSS feed. Please check the URL and try again.", details=str(e)) from e

    parsed = feedparser.parse(response.content)
    if parsed.bozo and not parsed.entries and not parsed.feed.get("title"):
        logger.warning(f"[RSS] parse failed for {url}: {parsed.get('bozo_exception')}")
        raise RSSError(
            "The URL does not contain a valid RSS feed format.",
            details=str(parsed.get("bozo_exception")),
        )
    return parsed


def validate_rss_feed(url) -> Dict[str, Any]:
    if not url or not isinstance(url, str):
        return {"isValid": False, "error": "RSS feed URL is required"}

    parsed_url = urlparse(url)
    if not parsed_url.scheme or not parsed_url.netloc:
        return {"isValid": False, "error": "Invalid URL format"}
    if parsed_url.scheme not in ("http", "https"):
        return {"isValid": False, "error": "RSS feed URL must use HTTP or HTTPS protocol"}

    try:
        feed = fetch_feed(url)
    except RSSError as e:
        return {"isValid": False, "error": e.message}

    title = feed.feed.get("title")
    if not title:
        return {"isValid": False, "error": "RSS feed is missing required title field"}

    return {
        "isValid": True,
        "feedTitle": title,
        "itemCount": len(feed.entries),
    }


def _audio_url(entry) -> str:
    for enclosure in entry.get("enclosures", []):
        if enclosure.get("href"):
            return enclosure["href"]
    return ""


def fetch_episodes(url: str, limit: int = RECENT_EPISODE_LIMIT) -> List[Dict[str, str]]:
    feed = fetch_feed(url)
    feed_image = (feed.feed.get("image") or {}).get("href", "")

    episodes = []
    for entry in feed.entries[:limit]:
        episodes.append({
            "title": entry.get("title") or "Untitled",
            "description": entry.get("summary", ""),
            "pubDate": entry.get("published") or entry.get("updated", ""),
            "link": entry.get("link", ""),
            "audioUrl": _audio_url(entry),
            "duration": entry.get("itunes_duration", ""),
            "imageUrl": (entry.get("image") or {}).get("href") or feed_image,
        })
    return episodes
