# storage.py
import logging
from pathlib import Path
from typing import Optional, Union

import aiofiles

from naming import sanitize_filename

logger = logging.getLogger(__name__)


async def ensure_directory(directory: Union[str, Path]) -> Optional[Path]:
    """
    Prüft den Pfad und legt ihn bei Bedarf an.
    Existiert er bereits als Datei, wird None zurückgegeben.
    """
    directory = Path(directory)

    if directory.exists():
        if not directory.is_dir():
            logger.error(f"Pfad {directory} existiert, ist aber kein Verzeichnis")
            return None
        return directory

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Verzeichnis {directory} konnte nicht angelegt werden: {e}")
        return None

    logger.info(f"Verzeichnis angelegt: {directory}")
    return directory


async def save_text_file(directory: Path, filename: str, text: str) -> Optional[Path]:
    """Speichert eine UTF-8 Textdatei. Bestehende Dateien werden nicht überschrieben."""
    output = Path(directory) / sanitize_filename(filename)

    if output.exists():
        logger.debug(f"Datei existiert bereits: {output} -- übersprungen")
        return output

    try:
        async with aiofiles.open(output, "w", encoding="utf-8") as f:
            await f.write(text)
    except OSError as e:
        logger.error(f"Fehler beim Schreiben von {output}: {e}")
        return None

    logger.debug(f"Textdatei gespeichert: {output}")
    return output
