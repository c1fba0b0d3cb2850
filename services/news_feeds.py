"""
News feed service - relays NFL and Madden headlines into league channels.

Each configured feed is polled on a fixed interval. Only articles published
after the service started are posted, and every article is posted at most
once per process (tracked in an in-memory seen-set), so a restart never
floods the channels with back-catalogue.
"""
from __future__ import annotations

import asyncio
import datetime as dt
import html
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import aiohttp
import discord

from core.constants import (
    BRAND_ICON_URL,
    COLOR_MADDEN,
    COLOR_NFL,
    EMBED_TITLE_LIMIT,
    FeedKey,
    K,
)
from core.utils import UTC, iso_to_dt, truncate, utcnow

logger = logging.getLogger("gridiron.news")

SNIPPET_LIMIT = 300
FETCH_TIMEOUT = aiohttp.ClientTimeout(total=30, connect=10, sock_read=20)
USER_AGENT = "GridironLeagueBot/1.0 (+https://discord.com)"

ATOM_NS = {"atom": "http://www.w3.org/2005/Atom"}
TAG_RE = re.compile(r"<[^>]+>")
SPACE_RE = re.compile(r"\s+")


class FeedError(RuntimeError):
    pass


@dataclass(frozen=True)
class FeedSource:
    key: str
    label: str
    source_name: str
    url: Optional[str]
    channel_id: Optional[int]
    color: int

    @property
    def configured(self) -> bool:
        return bool(self.url and self.channel_id)


@dataclass(frozen=True)
class FeedArticle:
    title: str
    link: str
    published: Optional[dt.datetime] = None
    snippet: str = ""


def build_sources(config: dict[str, Any]) -> dict[str, FeedSource]:
    return {
        FeedKey.NFL: FeedSource(
            key=FeedKey.NFL,
            label="NFL",
            source_name="ESPN NFL",
            url=config.get(K.NFL_RSS_URL),
            channel_id=config.get(K.NFL_NEWS_CHANNEL_ID),
            color=COLOR_NFL,
        ),
        FeedKey.MADDEN: FeedSource(
            key=FeedKey.MADDEN,
            label="Madden",
            source_name="EA Sports",
            url=config.get(K.MADDEN_RSS_URL),
            channel_id=config.get(K.MADDEN_NEWS_CHANNEL_ID),
            color=COLOR_MADDEN,
        ),
    }


def _clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    text = TAG_RE.sub(" ", html.unescape(value))
    return SPACE_RE.sub(" ", text).strip()


def _parse_date(value: Optional[str]) -> Optional[dt.datetime]:
    if not value:
        return None
    value = value.strip()
    parsed: Optional[dt.datetime]
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        parsed = iso_to_dt(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_feed(xml_text: str) -> list[FeedArticle]:
    """Parse an RSS 2.0 or Atom document into articles, newest first as published."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise FeedError(f"Feed is not valid XML: {e}") from e

    articles: list[FeedArticle] = []

    for item in root.iter("item"):
        title = _clean_text(item.findtext("title"))
        link = (item.findtext("link") or "").strip() or (item.findtext("guid") or "").strip()
        if not title or not link:
            continue
        articles.append(
            FeedArticle(
                title=title,
                link=link,
                published=_parse_date(item.findtext("pubDate")),
                snippet=_clean_text(item.findtext("description")),
            )
        )

    for entry in root.iter(f"{{{ATOM_NS['atom']}}}entry"):
        title = _clean_text(entry.findtext("atom:title", namespaces=ATOM_NS))
        link = None
        for link_elem in entry.findall("atom:link", ATOM_NS):
            if link_elem.get("rel", "alternate") == "alternate":
                link = link_elem.get("href")
                break
        if not title or not link:
            continue
        published = entry.findtext("atom:published", namespaces=ATOM_NS) or entry.findtext(
            "atom:updated", namespaces=ATOM_NS
        )
        summary = entry.findtext("atom:summary", namespaces=ATOM_NS) or entry.findtext(
            "atom:content", namespaces=ATOM_NS
        )
        articles.append(
            FeedArticle(
                title=title,
                link=link.strip(),
                published=_parse_date(published),
                snippet=_clean_text(summary),
            )
        )

    return articles


def article_id(source: FeedSource, article: FeedArticle) -> str:
    return f"{source.key}-{article.link}"


def build_article_embed(source: FeedSource, article: FeedArticle, test: bool = False) -> discord.Embed:
    if test:
        title = f"Latest {source.label} News (Test)"
        description = truncate(article.title, EMBED_TITLE_LIMIT)
        if article.snippet:
            description += "\n\n" + truncate(article.snippet, SNIPPET_LIMIT)
    else:
        title = truncate(article.title, EMBED_TITLE_LIMIT)
        description = truncate(article.snippet, SNIPPET_LIMIT) if article.snippet else ""

    embed = discord.Embed(
        title=title,
        url=article.link,
        description=description,
        color=source.color,
        timestamp=article.published,
    )
    embed.add_field(name="📰 Source", value=source.source_name, inline=True)
    if article.published:
        embed.add_field(name="📅 Published", value=article.published.strftime("%m/%d/%Y"), inline=True)
    footer = f"{source.label} RSS Test" if test else f"{source.label} News Feed"
    embed.set_footer(text=footer, icon_url=BRAND_ICON_URL)
    return embed


class NewsFeedService:
    def __init__(self, client: discord.Client, config: dict[str, Any]) -> None:
        self.client = client
        self.config = config
        self.sources = build_sources(config)
        self.start_time = utcnow()
        self.posted: set[str] = set()
        self._session: Optional[aiohttp.ClientSession] = None
        self._poll_task: Optional[asyncio.Task] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=FETCH_TIMEOUT,
                headers={"User-Agent": USER_AGENT},
            )
        return self._session

    async def fetch_articles(self, url: str) -> list[FeedArticle]:
        session = await self._get_session()
        async with session.get(url) as resp:
            if resp.status != 200:
                raise FeedError(f"Feed request failed with HTTP {resp.status}")
            text = await resp.text()
        return parse_feed(text)

    def select_new_articles(self, source: FeedSource, articles: list[FeedArticle]) -> list[FeedArticle]:
        """Articles published after start that have not been posted, oldest first.

        A link listed more than once in the same document is returned once.
        """
        fresh: dict[str, FeedArticle] = {}
        for article in articles:
            if article.published is None or article.published <= self.start_time:
                continue
            ident = article_id(source, article)
            if ident in self.posted or ident in fresh:
                continue
            fresh[ident] = article
        return sorted(fresh.values(), key=lambda a: a.published)

    def _resolve_channel(self, source: FeedSource) -> Optional[Any]:
        guild = self.client.get_guild(int(self.config[K.GUILD_ID]))
        if guild is None:
            return None
        return guild.get_channel(int(source.channel_id))

    async def poll_source(self, source: FeedSource) -> int:
        """Fetch one feed and post anything new. Returns the number posted."""
        if not source.configured:
            logger.warning("%s news channel or RSS URL not configured", source.label)
            return 0

        channel = self._resolve_channel(source)
        if channel is None:
            logger.warning("%s news channel not found", source.label)
            return 0

        try:
            articles = await self.fetch_articles(source.url)
        except (aiohttp.ClientError, asyncio.TimeoutError, FeedError) as e:
            logger.error("Error fetching %s news: %s", source.label, e)
            return 0

        posted = 0
        for article in self.select_new_articles(source, articles):
            try:
                await channel.send(embed=build_article_embed(source, article))
            except discord.HTTPException as e:
                logger.error("Failed to post %s article %s: %s", source.label, article.link, e)
                continue
            self.posted.add(article_id(source, article))
            posted += 1
            logger.info("Posted new %s news article", source.label)
        return posted

    async def poll_all(self) -> int:
        total = 0
        for source in self.sources.values():
            try:
                total += await self.poll_source(source)
            except Exception as e:
                logger.error("Unexpected error polling %s news: %s", source.label, e, exc_info=True)
        return total

    async def test_feed(self, key: str) -> tuple[FeedSource, int, Optional[FeedArticle]]:
        """Fetch a feed on demand; returns (source, article count, latest article)."""
        source = self.sources.get(key)
        if source is None:
            raise FeedError(f"Unknown feed: {key}")
        if not source.url:
            raise FeedError(f"{source.label} RSS URL not configured in environment variables")
        articles = await self.fetch_articles(source.url)
        return source, len(articles), (articles[0] if articles else None)

    def start(self) -> None:
        if self._poll_task is not None and not self._poll_task.done():
            return
        interval = float(self.config.get(K.NEWS_POLL_INTERVAL_SECONDS, 600))
        self._poll_task = asyncio.create_task(self._periodic_poll(interval))
        logger.info(
            "News feeds started (every %s minutes) - only posting articles published after bot start",
            round(interval / 60),
        )

    async def stop(self) -> None:
        if self._poll_task:
            self._poll_task.cancel()
            await asyncio.gather(self._poll_task, return_exceptions=True)
            self._poll_task = None
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        logger.info("News feeds shutdown complete")

    async def _periodic_poll(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.poll_all()
            except Exception as e:
                logger.error("Error in news feed poll: %s", e, exc_info=True)
