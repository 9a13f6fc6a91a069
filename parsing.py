"""Strukturierte Abfragen auf geparsten HTML-Dokumenten."""

import logging
import re
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from config import Config

logger = logging.getLogger(__name__)

PAGINATION_PATTERN = re.compile(r"(\d+)\s*/\s*(\d+)")


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def find_by_class(node: Tag, class_name: str) -> Optional[Tag]:
    found = node.find(class_=class_name)
    return found if isinstance(found, Tag) else None


def find_all_by_class(node: Tag, class_name: str) -> List[Tag]:
    return [tag for tag in node.find_all(class_=class_name) if isinstance(tag, Tag)]


def parse_post_element_id(element_id: Optional[str]) -> Optional[int]:
    """'p12345' -> 12345, alles andere -> None"""
    if not element_id or not element_id.startswith(Config.POST_ID_PREFIX):
        return None
    digits = element_id[len(Config.POST_ID_PREFIX):]
    return int(digits) if digits.isdigit() else None


def parse_pagination(document: Tag) -> Optional[Tuple[int, int]]:
    """
    Liest die Seitenanzeige ("aktuelle Seite / Seiten gesamt").
    Fehlt sie, gibt es genau eine Seite und das Ergebnis ist None.
    """
    indicator = find_by_class(document, Config.PAGINATION_CLASS)
    if indicator is None:
        return None

    text = indicator.get_text(" ", strip=True)
    match = PAGINATION_PATTERN.search(text)
    if not match:
        logger.warning(f"Seitenanzeige nicht lesbar: {text!r}")
        return None

    current, total = int(match.group(1)), int(match.group(2))
    if total < 1:
        return None
    return current, total


def extract_fragments(document: Tag) -> List[Tuple[int, Tag]]:
    """Alle Post-Fragmente einer Listenseite als (post_id, element)."""
    fragments = []
    for element in find_all_by_class(document, Config.POST_CLASS):
        post_id = parse_post_element_id(element.get("id"))
        if post_id is None:
            logger.debug(f"Post-Element ohne gültige ID übersprungen: {element.get('id')!r}")
            continue
        fragments.append((post_id, element))
    return fragments


def link_hrefs(node: Tag) -> List[str]:
    return [a["href"] for a in node.find_all("a") if a.get("href")]
