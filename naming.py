"""Pfad- und Dateinamen-Normalisierung."""

import re
from pathlib import Path
from typing import Union

from config import Config

SEGMENT_PATTERN = re.compile(r"[^A-Za-z0-9-]")
UNDERSCORE_RUN_PATTERN = re.compile(r"_{2,}")

# Zeichen, die unter Windows/Unix in Dateinamen nicht erlaubt sind
INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1F]+')
RESERVED_FILENAMES = {
    "CON", "PRN", "AUX", "NUL",
    *(f"COM{i}" for i in range(1, 10)),
    *(f"LPT{i}" for i in range(1, 10)),
}


def sanitize_segment(text: str, fallback: str = "untitled") -> str:
    """
    Ersetzt alles außer [A-Za-z0-9-] durch '_' und fasst Unterstrich-Folgen
    zusammen. Führende und abschließende Unterstriche werden entfernt.
    """
    normalized = SEGMENT_PATTERN.sub("_", text or "")
    normalized = UNDERSCORE_RUN_PATTERN.sub("_", normalized).strip("_")
    return normalized or fallback


def truncate_title(title: str) -> str:
    if len(title) > Config.MAX_TITLE_LENGTH:
        return title[:Config.MAX_TITLE_LENGTH - 1]
    return title


def build_post_dir(base: Union[str, Path], date: str, title: str, post_id: int) -> Path:
    """Erzeugt `base/<datum>_<titel>_<post_id>` (ohne Seiteneffekte)."""
    return Path(base) / f"{date}_{sanitize_segment(truncate_title(title))}_{post_id}"


def _truncate_bytes(text: str, limit: int) -> str:
    # Schneidet nie mitten in einem UTF-8-Zeichen ab
    return text.encode("utf-8")[:max(limit, 0)].decode("utf-8", errors="ignore")


def sanitize_filename(name: str, fallback: str = "file") -> str:
    """
    Entfernt Zeichen, die in Dateinamen ungültig sind. Punkte und damit
    Dateiendungen bleiben erhalten.

    Die Länge wird in UTF-8-Bytes gemessen; Platz für die Endung der
    Teil-Downloads (`.part`) bleibt innerhalb des Dateisystem-Limits frei.
    """
    cleaned = INVALID_FILENAME_CHARS.sub("_", name or "").strip(" .")
    if not cleaned:
        return fallback
    stem, dot, suffix = cleaned.partition(".")
    if stem.upper() in RESERVED_FILENAMES:
        cleaned = f"{stem}_{dot}{suffix}"

    limit = Config.MAX_FILENAME_LENGTH - len(Config.PARTIAL_SUFFIX)
    if len(cleaned.encode("utf-8")) > limit:
        extension = Path(cleaned).suffix
        if len(extension.encode("utf-8")) >= limit:
            extension = ""
        cleaned = _truncate_bytes(cleaned[:len(cleaned) - len(extension)], limit - len(extension.encode("utf-8")))
        cleaned += extension
    return cleaned
