"""Auflösung der Benutzereingabe (ID, URL oder Name) zu einem Creator."""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Union

from models import CreatorRef

logger = logging.getLogger(__name__)

# Akzeptiert auch https://yiff.party/<id> und https://yiff.party/patreon/<id>
URL_PREFIX_PATTERN = re.compile(r"(https?)?://(www\.)?yiff\.party(/patreon)?/", re.IGNORECASE)
NUMERIC_PATTERN = re.compile(r"^[0-9]+$")


class InvalidCreatorIdentifierError(ValueError):
    """Eingabe ist leer oder keine gültige Creator-ID / URL / Name."""


class CreatorNotFoundError(LookupError):
    """Kein Creator im Verzeichnis passt zur Eingabe."""


def normalize_identifier(raw: Optional[str]) -> str:
    """Entfernt das bekannte URL-Präfix und prüft die Eingabe."""
    identifier = URL_PREFIX_PATTERN.sub("", (raw or "").strip())
    identifier = identifier.split("?", 1)[0].strip().strip("/")
    if not identifier or "/" in identifier:
        raise InvalidCreatorIdentifierError(
            f"Ungültige Creator-Angabe: {raw!r} (erwartet: numerische ID, URL oder Name)"
        )
    return identifier


def parse_directory(data: Union[Dict[str, Any], List[Dict[str, Any]]]) -> List[CreatorRef]:
    """creators.json -> Liste von CreatorRef; ungültige Einträge werden ignoriert."""
    entries = data.get("creators", []) if isinstance(data, dict) else data
    creators = []
    for entry in entries or []:
        try:
            creators.append(CreatorRef.from_json(entry))
        except (KeyError, TypeError, ValueError):
            logger.debug(f"Ungültiger Verzeichniseintrag ignoriert: {entry!r}")
    return creators


def resolve(raw: str, directory: Iterable[CreatorRef]) -> Optional[CreatorRef]:
    """
    Numerische Eingaben werden gegen die ID geprüft, alles andere
    case-insensitiv gegen den Namen. Kein Treffer -> None.
    """
    identifier = normalize_identifier(raw)

    if NUMERIC_PATTERN.match(identifier):
        creator_id = int(identifier)
        return next((c for c in directory if c.id == creator_id), None)

    wanted = identifier.strip().casefold()
    return next((c for c in directory if c.name.strip().casefold() == wanted), None)
