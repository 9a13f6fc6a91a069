# config.py

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict


class Config:
    """Konfiguration für den Yiff.party Archiver"""

    # ========================================
    # 🌐 WEBSITE KONFIGURATION
    # ========================================
    BASE_URL = "https://yiff.party"

    # Creator-Verzeichnis (alle Creator mit ID + Name)
    CREATORS_PATH = "/json/creators.json"

    # Metadaten eines Creators (Posts + Shared Files)
    CREATOR_DATA_PATH = "/{creator_id}.json"

    # Paginierte HTML-Seite eines Creators
    CREATOR_PAGE_PATH = "/patreon/{creator_id}?p={page}"

    # ========================================
    # 🎯 SELEKTOREN (Klassen / IDs im HTML)
    # ========================================

    # Einzelner Post auf der Listenseite, ID-Attribut = "p<post_id>"
    POST_CLASS = "yp-post"
    POST_ID_PREFIX = "p"

    # Seitenanzeige "1 / 12"
    PAGINATION_CLASS = "paginate-count"

    # Karten innerhalb eines Posts
    CARD_CLASS = "card-attachments"
    CARD_TITLE_CLASS = "card-title"

    # Nur Karten mit diesem Text im Titel enthalten Medien-Links
    MEDIA_CARD_MARKER = "Media"

    # Eingebettete Inhalte (YouTube, Vimeo, ...)
    EMBED_CLASS = "card-embed"

    # Inline-Bilder im Post-Body
    INLINE_MEDIA_PATH = "/patreon_inline/{post_id}/"

    # ========================================
    # ⏱️ TIMING
    # ========================================
    REQUEST_TIMEOUT = 60  # Sekunden

    # ========================================
    # 🎯 DOWNLOAD LIMITS
    # ========================================
    DOWNLOAD_CONCURRENCY = 1  # 1 = streng sequentiell
    CHUNK_SIZE = 64 * 1024    # Bytes pro Schreibvorgang
    MAX_TITLE_LENGTH = 60     # längere Titel werden gekürzt
    MAX_FILENAME_LENGTH = 255

    # ========================================
    # 🌐 HTTP KONFIGURATION
    # ========================================
    USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:68.0) Gecko/20100101 Firefox/68.0"

    # ========================================
    # 📊 LOGGING
    # ========================================
    LOG_LEVEL = "INFO"  # DEBUG, INFO, WARNING, ERROR
    LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    SHOW_PROGRESS = True  # tqdm-Fortschrittsbalken pro Datei

    # ========================================
    # 💾 AUSGABE
    # ========================================
    OUTPUT_DIR = Path.cwd() / "yiff-dl-output"
    SHARED_FILES_DIR = "_SharedFiles"
    POST_BODY_FILE = "_post_body.html"
    EMBED_URLS_FILE = "_embed_urls.txt"
    EMBED_BODY_FILE = "_embed_body.html"
    META_SUFFIX = ".meta"
    PARTIAL_SUFFIX = ".part"


@dataclass
class HttpSettings:
    """Explizite Client-Konfiguration, wird an jede Netzwerk-Komponente übergeben."""

    user_agent: str = Config.USER_AGENT
    timeout: float = Config.REQUEST_TIMEOUT
    base_url: str = Config.BASE_URL
    extra_headers: Dict[str, str] = field(default_factory=dict)

    @property
    def headers(self) -> Dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8",
        }
        headers.update(self.extra_headers)
        return headers
