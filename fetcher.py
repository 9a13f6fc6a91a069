import asyncio
import logging
import os
from pathlib import Path
from typing import Callable, Dict, List, Optional

import aiofiles
import aiohttp
from tqdm import tqdm

from config import Config
from models import DownloadTask, FetchOutcome
from naming import sanitize_filename

logger = logging.getLogger(__name__)


class ArtifactFetcher:
    """
    Lädt einzelne Dateien per Streaming herunter.

    Existiert die Zieldatei bereits, wird kein Request gestellt. Geschrieben
    wird zuerst nach `<ziel>.part`, erst nach vollständigem Empfang wird
    umbenannt, so dass abgebrochene Downloads nie als fertig gelten.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        chunk_size: int = Config.CHUNK_SIZE,
        show_progress: bool = Config.SHOW_PROGRESS,
    ):
        self.session = session
        self.chunk_size = chunk_size
        self.show_progress = show_progress

        # Ein Lock pro Zielpfad, damit parallele Tasks nicht doppelt laden
        self._locks: Dict[Path, asyncio.Lock] = {}

    def destination_for(self, task: DownloadTask) -> Path:
        return Path(task.directory) / sanitize_filename(task.filename)

    async def fetch(self, task: DownloadTask) -> FetchOutcome:
        destination = self.destination_for(task)
        lock = self._locks.setdefault(destination, asyncio.Lock())

        async with lock:
            if destination.exists():
                logger.info(f"Datei existiert bereits: {destination} -- übersprungen")
                return FetchOutcome.skipped(task.url, destination)

            partial = destination.with_name(destination.name + Config.PARTIAL_SUFFIX)
            try:
                await self._stream_to(task.url, partial, destination.name)
                os.replace(partial, destination)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
                logger.error(f"Download fehlgeschlagen: {task.url}")
                logger.error(f"Datei konnte nicht gespeichert werden: {destination} ({e!r})")
                self._discard(partial)
                return FetchOutcome.failed(task.url, destination, repr(e))

        logger.info(f"Gespeichert: {destination}")
        return FetchOutcome.saved(task.url, destination)

    async def _stream_to(self, url: str, partial: Path, label: str) -> None:
        async with self.session.get(url) as response:
            response.raise_for_status()
            length = response.headers.get("Content-Length")
            total = int(length) if length and length.isdigit() else None

            with tqdm(
                total=total,
                desc=label[:40],
                unit="B",
                unit_scale=True,
                leave=False,
                disable=not self.show_progress,
            ) as bar:
                async with aiofiles.open(partial, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.chunk_size):
                        await f.write(chunk)
                        bar.update(len(chunk))

    @staticmethod
    def _discard(partial: Path) -> None:
        try:
            partial.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Teildownload {partial} konnte nicht entfernt werden: {e}")


class DownloadPool:
    """
    Arbeitswarteschlange mit fester Anzahl Worker.

    `submit()` liefert ein Future mit dem FetchOutcome. Beim Verlassen des
    Kontexts wird gewartet, bis die Queue leer ist.
    """

    def __init__(
        self,
        fetcher: ArtifactFetcher,
        workers: int = Config.DOWNLOAD_CONCURRENCY,
        on_outcome: Optional[Callable[[FetchOutcome], None]] = None,
    ):
        self.fetcher = fetcher
        self.workers = max(1, workers)
        self.on_outcome = on_outcome
        self.queue: "asyncio.Queue" = asyncio.Queue()
        self._tasks: List[asyncio.Task] = []

    async def __aenter__(self):
        self._tasks = [asyncio.create_task(self._worker()) for _ in range(self.workers)]
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            await self.queue.join()
        for worker in self._tasks:
            worker.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    def submit(self, task: DownloadTask) -> "asyncio.Future":
        future = asyncio.get_running_loop().create_future()
        self.queue.put_nowait((task, future))
        return future

    async def _worker(self) -> None:
        while True:
            task, future = await self.queue.get()
            try:
                try:
                    outcome = await self.fetcher.fetch(task)
                except Exception as e:  # pylint: disable=broad-except
                    logger.exception(f"Unerwarteter Fehler bei {task.url}")
                    outcome = FetchOutcome.failed(
                        task.url, self.fetcher.destination_for(task), repr(e)
                    )
                if self.on_outcome:
                    self.on_outcome(outcome)
                if not future.done():
                    future.set_result(outcome)
            finally:
                self.queue.task_done()
