import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

import aiohttp
from bs4 import BeautifulSoup, Tag

from config import Config
from parsing import extract_fragments, parse_document, parse_pagination
from remote import fetch_text

logger = logging.getLogger(__name__)


class PostIndex:
    """
    Post-ID -> HTML-Fragment über alle Listenseiten.

    Ein bereits vorhandener Eintrag wird nie überschrieben; doppelte IDs
    werden in `collisions` festgehalten.
    """

    def __init__(self):
        self._fragments: Dict[int, Tag] = {}
        self.collisions: List[int] = []

    def add(self, post_id: int, fragment: Tag, page: int = 0) -> bool:
        if post_id in self._fragments:
            logger.warning(f"Post-ID {post_id} auf Seite {page} doppelt -- erster Eintrag bleibt")
            self.collisions.append(post_id)
            return False
        self._fragments[post_id] = fragment
        return True

    def get(self, post_id: int) -> Optional[Tag]:
        return self._fragments.get(post_id)

    def keys(self):
        return self._fragments.keys()

    def __contains__(self, post_id) -> bool:
        return post_id in self._fragments

    def __len__(self) -> int:
        return len(self._fragments)

    def __iter__(self) -> Iterator[int]:
        return iter(self._fragments)


@dataclass
class CrawlResult:
    index: PostIndex = field(default_factory=PostIndex)
    total_pages: int = 0
    failed_pages: List[int] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failed_pages


class PaginationCrawler:
    """Lädt alle Listenseiten eines Creators und baut den PostIndex."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str = Config.BASE_URL,
        concurrency: int = 1,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.concurrency = max(1, concurrency)

    def page_url(self, creator_id: int, page: int) -> str:
        return self.base_url + Config.CREATOR_PAGE_PATH.format(creator_id=creator_id, page=page)

    async def _fetch_page(self, creator_id: int, page: int) -> Optional[BeautifulSoup]:
        url = self.page_url(creator_id, page)
        try:
            html = await fetch_text(self.session, url)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            # ValueError deckt auch nicht dekodierbare Antworten ab
            logger.warning(f"Seite {page} konnte nicht geladen werden ({url}): {e!r}")
            return None
        return parse_document(html)

    def _merge(self, result: CrawlResult, page: int, document: BeautifulSoup) -> None:
        fragments = extract_fragments(document)
        if not fragments and page > 1:
            # Folgeseiten ohne Posts gelten als nicht auswertbar
            logger.warning(f"Seite {page} enthält keine Posts -- wird als fehlgeschlagen gewertet")
            result.failed_pages.append(page)
            return

        for post_id, fragment in fragments:
            result.index.add(post_id, fragment, page)
        logger.info(f"Seite {page}/{result.total_pages}: {len(fragments)} Posts")

    async def crawl_all(self, creator_id: int) -> CrawlResult:
        result = CrawlResult()

        first = await self._fetch_page(creator_id, 1)
        if first is None:
            # Seitenzahl unbekannt, mindestens Seite 1 fehlt
            result.total_pages = 1
            result.failed_pages.append(1)
            return result

        pagination = parse_pagination(first)
        result.total_pages = pagination[1] if pagination else 1
        self._merge(result, 1, first)

        if result.total_pages > 1:
            semaphore = asyncio.Semaphore(self.concurrency)

            async def fetch(page: int):
                async with semaphore:
                    return page, await self._fetch_page(creator_id, page)

            pages = await asyncio.gather(
                *(fetch(page) for page in range(2, result.total_pages + 1))
            )

            # Zusammenführen in aufsteigender Seitenreihenfolge
            for page, document in sorted(pages, key=lambda item: item[0]):
                if document is None:
                    result.failed_pages.append(page)
                    continue
                self._merge(result, page, document)

        if result.failed_pages:
            logger.warning(
                f"Unvollständiger Crawl: {len(result.failed_pages)} von "
                f"{result.total_pages} Seiten fehlgeschlagen ({result.failed_pages})"
            )
        return result
