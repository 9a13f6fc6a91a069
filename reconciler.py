"""
Abgleich eines JSON-Posts mit seinem HTML-Fragment.

Aus beiden Quellen werden alle herunterladbaren Referenzen gesammelt
(Inline-Bilder, Medien-Karten, Embeds, Attachments, Post-File) und als
DownloadTasks plus Text-Artefakte zurückgegeben.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from urllib.parse import unquote, urljoin, urlparse

from bs4 import Tag

from config import Config
from crawler import PostIndex
from models import AuxFile, DownloadTask, PostRecord
from parsing import find_all_by_class, find_by_class, link_hrefs, parse_document

logger = logging.getLogger(__name__)


@dataclass
class ReconciledPost:
    post_id: int
    fragment_found: bool
    tasks: List[DownloadTask] = field(default_factory=list)
    aux_files: List[AuxFile] = field(default_factory=list)

    @property
    def body_artifact(self) -> Optional[AuxFile]:
        return next((f for f in self.aux_files if f.name == Config.POST_BODY_FILE), None)


def is_media_card(title: str) -> bool:
    """Nur Karten, deren Titel wörtlich 'Media' enthält (case-sensitiv)."""
    return Config.MEDIA_CARD_MARKER in (title or "")


def inline_image_url(src: str, base_url: str = Config.BASE_URL) -> str:
    if src.startswith(("http://", "https://")):
        return src
    prefix = base_url.rstrip("/")
    # Schrägstrich nur ergänzen, wenn src ihn nicht schon mitbringt
    if not src.startswith("/"):
        prefix += "/"
    return prefix + src


def url_basename(url: str) -> str:
    return unquote(urlparse(url).path.rsplit("/", 1)[-1])


def rewrite_inline_paths(body: str, post_id: int) -> str:
    pattern = re.escape(Config.INLINE_MEDIA_PATH.format(post_id=post_id))
    return re.sub(pattern, "./", body)


def make_task(url: str, directory: Path, filename: str = "", post_id: int = 0) -> Optional[DownloadTask]:
    """DownloadTask für eine Referenz, ungültige URLs werden nur protokolliert."""
    try:
        return DownloadTask(url, directory, filename or url_basename(url))
    except ValueError as e:
        logger.warning(f"Ungültige URL {url!r} in Post {post_id} -- übersprungen ({e})")
        return None


def absolute_url(href: str, base_url: str = Config.BASE_URL) -> Optional[str]:
    try:
        return urljoin(base_url + "/", href)
    except ValueError as e:
        logger.warning(f"Ungültige URL {href!r} -- übersprungen ({e})")
        return None


def inline_image_tasks(body: str, directory: Path, base_url: str = Config.BASE_URL) -> List[DownloadTask]:
    tasks = []
    for index, img in enumerate(parse_document(body).find_all("img"), start=1):
        src = (img.get("src") or "").strip()
        if not src:
            continue
        url = inline_image_url(src, base_url)
        try:
            filename = url_basename(url) or f"inline_{index}"
        except ValueError as e:
            logger.warning(f"Ungültige Bild-URL {url!r} -- übersprungen ({e})")
            continue
        tasks.append(DownloadTask(url, directory, filename))
    return tasks


def media_card_tasks(fragment: Tag, directory: Path, base_url: str = Config.BASE_URL) -> List[DownloadTask]:
    tasks = []
    for card in find_all_by_class(fragment, Config.CARD_CLASS):
        title = find_by_class(card, Config.CARD_TITLE_CLASS)
        if title is None or not is_media_card(title.get_text(" ", strip=True)):
            continue

        for link in card.find_all("a"):
            href = link.get("href")
            if not href:
                continue
            url = absolute_url(href, base_url)
            task = make_task(url, directory, link.get_text(strip=True)) if url else None
            if task:
                tasks.append(task)
    return tasks


def embed_artifacts(fragment: Tag) -> List[AuxFile]:
    section = find_by_class(fragment, Config.EMBED_CLASS)
    if section is None:
        return []

    files = []
    urls = link_hrefs(section)
    if urls:
        # Für externe Tools wie youtube-dl gedacht, hier wird nichts geladen
        files.append(AuxFile(Config.EMBED_URLS_FILE, "\n".join(urls)))
    files.append(AuxFile(Config.EMBED_BODY_FILE, str(section)))
    return files


def file_tasks(post: PostRecord, directory: Path, base_url: str = Config.BASE_URL) -> List[DownloadTask]:
    tasks = []
    for attachment in post.attachments:
        if not attachment.file_url:
            logger.warning(f"Attachment {attachment.file_name!r} in Post {post.id} ohne URL -- übersprungen")
            continue
        url = absolute_url(attachment.file_url, base_url)
        task = make_task(url, directory, attachment.file_name, post.id) if url else None
        if task:
            tasks.append(task)

    post_file = post.post_file
    if post_file and post_file.file_url:
        url = absolute_url(post_file.file_url, base_url)
        task = make_task(url, directory, post_file.file_name, post.id) if url else None
        if task:
            tasks.append(task)
    return tasks


def reconcile(
    post: PostRecord,
    index: PostIndex,
    directory: Path,
    base_url: str = Config.BASE_URL,
) -> ReconciledPost:
    fragment = index.get(post.id)
    result = ReconciledPost(post_id=post.id, fragment_found=fragment is not None)

    if fragment is None:
        logger.warning(
            f"Kein HTML-Fragment für Post {post.id} ({post.title!r}) -- "
            f"Medien-Karten und Embeds entfallen"
        )

    if post.body and post.body.strip():
        result.aux_files.append(
            AuxFile(Config.POST_BODY_FILE, rewrite_inline_paths(post.body, post.id))
        )
        result.tasks.extend(inline_image_tasks(post.body, directory, base_url))

    if fragment is not None:
        result.tasks.extend(media_card_tasks(fragment, directory, base_url))
        result.aux_files.extend(embed_artifacts(fragment))

    result.tasks.extend(file_tasks(post, directory, base_url))
    return result
