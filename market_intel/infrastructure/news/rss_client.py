"""
Market news headlines from public RSS feeds (Economic Times, MoneyControl).
"""

import asyncio
import logging
from typing import Iterable, List, Optional

import requests
from bs4 import BeautifulSoup

from market_intel.domain.models import Headline

logger = logging.getLogger(__name__)

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "application/rss+xml, application/xml, text/xml",
}


def source_name(url: str) -> str:
    if "economictimes" in url:
        return "Economic Times"
    if "moneycontrol" in url:
        return "MoneyControl"
    return url


def parse_feed(text: str, source: str, limit: int = 5) -> List[Headline]:
    """
    Parse the first ``limit`` items of an RSS document.

    html.parser lower-cases tag names and treats <link> as a void element,
    so the link URL ends up in the tag's following text node.
    """
    cleaned = text.replace("<![CDATA[", "").replace("]]>", "")
    soup = BeautifulSoup(cleaned, "html.parser")

    headlines: List[Headline] = []
    for item in soup.find_all("item")[:limit]:
        title_tag = item.find("title")
        if title_tag is None:
            continue
        title = title_tag.get_text(strip=True)
        if not title:
            continue

        headlines.append(Headline(
            title=title,
            source=source,
            link=_link_of(item),
            pub_date=_text_of(item.find("pubdate")),
        ))
    return headlines


def _text_of(tag) -> Optional[str]:
    if tag is None:
        return None
    value = tag.get_text(strip=True)
    return value or None


def _link_of(item) -> Optional[str]:
    tag = item.find("link")
    if tag is None:
        return None
    value = tag.get_text(strip=True)
    if value:
        return value
    sibling = tag.next_sibling
    if isinstance(sibling, str) and sibling.strip():
        return sibling.strip()
    return None


class HeadlineClient:
    """
    Fetches headlines from configured feeds.
    A failing feed is logged and skipped.
    """

    def __init__(
        self,
        feeds: Iterable[str],
        per_source: int = 5,
        max_items: int = 10,
        timeout: float = 5.0,
    ):
        self.feeds = list(feeds)
        self.per_source = per_source
        self.max_items = max_items
        self.timeout = timeout

    async def get_headlines(self) -> List[Headline]:
        return await asyncio.to_thread(self._fetch_all)

    def _fetch_all(self) -> List[Headline]:
        headlines: List[Headline] = []
        for url in self.feeds:
            try:
                response = requests.get(url, headers=HEADERS, timeout=self.timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                logger.warning(f"⚠️ Failed to fetch news from {url}: {e}")
                continue
            headlines.extend(parse_feed(response.text, source_name(url), self.per_source))
        return headlines[: self.max_items]
