import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

import aiohttp

from config import Config, HttpSettings
from crawler import CrawlResult, PaginationCrawler
from fetcher import ArtifactFetcher, DownloadPool
from models import (
    CreatorRef,
    DownloadTask,
    FetchOutcome,
    PostRecord,
    RunSummary,
    SharedFileRecord,
)
from naming import build_post_dir, sanitize_segment
from reconciler import reconcile
from remote import create_session, fetch_json
from resolver import (
    CreatorNotFoundError,
    InvalidCreatorIdentifierError,
    normalize_identifier,
    parse_directory,
    resolve,
)
from storage import ensure_directory, save_text_file

logging.basicConfig(level=Config.LOG_LEVEL, format=Config.LOG_FORMAT)
logger = logging.getLogger(__name__)


class ArchiveState(Enum):
    RESOLVING_IDENTITY = "resolving_identity"
    FETCHING_METADATA = "fetching_metadata"
    CRAWLING = "crawling"
    RECONCILING_POSTS = "reconciling_posts"
    ARCHIVING_SHARED_FILES = "archiving_shared_files"
    DONE = "done"
    FAILED = "failed"


class CreatorArchiver:
    """
    Archiviert Posts und Shared Files eines Creators.

    Ablauf: Identität auflösen -> Metadaten laden -> Listenseiten crawlen ->
    Posts abgleichen und herunterladen -> Shared Files. Nur eine nicht
    auflösbare Identität bricht den Lauf ab, alles andere wird pro Post
    bzw. pro Datei protokolliert und übersprungen.
    """

    def __init__(
        self,
        output_base: Path = Config.OUTPUT_DIR,
        settings: Optional[HttpSettings] = None,
        creator_folder: bool = False,
        concurrency: int = Config.DOWNLOAD_CONCURRENCY,
        show_progress: bool = Config.SHOW_PROGRESS,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.output_base = Path(output_base)
        self.settings = settings or HttpSettings()
        self.creator_folder = creator_folder
        self.concurrency = max(1, concurrency)
        self.show_progress = show_progress

        # Eine übergebene Session gehört dem Aufrufer und wird nicht geschlossen
        self.session = session
        self._owns_session = session is None

        self.state = ArchiveState.RESOLVING_IDENTITY
        self.summary = RunSummary()

    async def __aenter__(self):
        if self.session is None:
            self.session = create_session(self.settings)
        return self

    async def __aexit__(self, *args):
        if self._owns_session and self.session:
            await self.session.close()

    def _url(self, path: str) -> str:
        return self.settings.base_url.rstrip("/") + path

    def _enter(self, state: ArchiveState) -> None:
        logger.debug(f"Zustand: {self.state.value} -> {state.value}")
        self.state = state

    # ============================================================
    # IDENTITÄT
    # ============================================================

    async def resolve_creator(self, identifier: str) -> CreatorRef:
        try:
            normalize_identifier(identifier)
        except InvalidCreatorIdentifierError:
            self._enter(ArchiveState.FAILED)
            raise

        logger.info("Lade Creator-Verzeichnis, das kann einige Sekunden dauern...")
        try:
            data = await fetch_json(self.session, self._url(Config.CREATORS_PATH))
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self._enter(ArchiveState.FAILED)
            raise CreatorNotFoundError(f"Creator-Verzeichnis nicht abrufbar: {e!r}") from e

        creator = resolve(identifier, parse_directory(data))
        if creator is None:
            self._enter(ArchiveState.FAILED)
            raise CreatorNotFoundError(f"Kein Creator gefunden für: {identifier!r}")

        logger.info(f"Creator gefunden: {creator.name} ({creator.id})")
        return creator

    # ============================================================
    # METADATEN
    # ============================================================

    async def fetch_metadata(self, creator: CreatorRef) -> Tuple[List[PostRecord], List[SharedFileRecord]]:
        url = self._url(Config.CREATOR_DATA_PATH.format(creator_id=creator.id))
        try:
            data = await fetch_json(self.session, url)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Metadaten für Creator {creator.id} nicht abrufbar: {e!r}")
            return [], []

        if not isinstance(data, dict):
            logger.error(f"Unerwartetes Metadatenformat für Creator {creator.id}")
            return [], []

        posts = self._parse_records(data.get("posts"), PostRecord)
        shared_files = self._parse_records(data.get("shared_files"), SharedFileRecord)
        logger.info(f"{len(posts)} Posts und {len(shared_files)} Shared Files gefunden")
        return posts, shared_files

    @staticmethod
    def _parse_records(entries, record_type) -> list:
        records = []
        for entry in entries or []:
            try:
                records.append(record_type.from_json(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ungültiger {record_type.__name__}-Eintrag ignoriert: {e!r}")
        return records

    # ============================================================
    # POSTS
    # ============================================================

    async def archive_post(
        self,
        post: PostRecord,
        crawl: CrawlResult,
        base_dir: Path,
        pool: DownloadPool,
    ) -> List["asyncio.Future"]:
        directory = await ensure_directory(
            build_post_dir(base_dir, post.created_date, post.title, post.id)
        )
        if directory is None:
            logger.warning(f"Post {post.id} übersprungen: Verzeichnis nicht verfügbar")
            self.summary.posts_skipped.append(post.id)
            return []

        try:
            reconciled = reconcile(post, crawl.index, directory, self.settings.base_url)
        except Exception as e:
            logger.exception(f"Post {post.id} übersprungen: Abgleich fehlgeschlagen ({e!r})")
            self.summary.posts_skipped.append(post.id)
            return []
        if not reconciled.fragment_found:
            self.summary.posts_without_fragment.append(post.id)

        # Textartefakte werden vor den Downloads geschrieben
        for aux in reconciled.aux_files:
            await save_text_file(directory, aux.name, aux.content)

        self.summary.posts_archived += 1
        logger.info(f"Post {post.id} ({post.title!r}): {len(reconciled.tasks)} Downloads")
        return [pool.submit(task) for task in reconciled.tasks]

    # ============================================================
    # SHARED FILES
    # ============================================================

    async def archive_shared_file(
        self,
        record: SharedFileRecord,
        directory: Path,
        pool: DownloadPool,
    ) -> FetchOutcome:
        outcome = await pool.submit(DownloadTask(record.file_url, directory, record.download_name))
        if outcome.ok:
            await save_text_file(directory, outcome.path.name + Config.META_SUFFIX, record.meta_text)
        return outcome

    async def archive_shared_files(
        self,
        shared_files: List[SharedFileRecord],
        base_dir: Path,
        pool: DownloadPool,
    ) -> None:
        if not shared_files:
            return
        directory = await ensure_directory(base_dir / Config.SHARED_FILES_DIR)
        if directory is None:
            logger.error("Shared Files übersprungen: Verzeichnis nicht verfügbar")
            return
        await asyncio.gather(
            *(self.archive_shared_file(record, directory, pool) for record in shared_files)
        )

    # ============================================================
    # GESAMTABLAUF
    # ============================================================

    async def archive(self, identifier: str) -> RunSummary:
        self._enter(ArchiveState.RESOLVING_IDENTITY)
        creator = await self.resolve_creator(identifier)
        self.summary.creator = creator

        self._enter(ArchiveState.FETCHING_METADATA)
        posts, shared_files = await self.fetch_metadata(creator)
        self.summary.posts_total = len(posts)
        self.summary.shared_files_total = len(shared_files)

        self._enter(ArchiveState.CRAWLING)
        crawler = PaginationCrawler(self.session, self.settings.base_url, self.concurrency)
        crawl = await crawler.crawl_all(creator.id)
        self.summary.pages_total = crawl.total_pages
        self.summary.failed_pages = list(crawl.failed_pages)
        self.summary.collisions = list(crawl.index.collisions)

        base_dir = self.output_base
        if self.creator_folder:
            base_dir = base_dir / sanitize_segment(creator.name, fallback=str(creator.id))

        logger.info(f"Download gestartet für Creator: {creator.name} ({creator.id})")
        fetcher = ArtifactFetcher(self.session, show_progress=self.show_progress)
        async with DownloadPool(fetcher, self.concurrency, self.summary.record) as pool:
            self._enter(ArchiveState.RECONCILING_POSTS)
            pending = []
            for post in posts:
                pending.extend(await self.archive_post(post, crawl, base_dir, pool))
            await asyncio.gather(*pending)

            self._enter(ArchiveState.ARCHIVING_SHARED_FILES)
            await self.archive_shared_files(shared_files, base_dir, pool)

        self._enter(ArchiveState.DONE)
        return self.summary
