# remote.py
import logging
from typing import Any

import aiohttp

from config import HttpSettings

logger = logging.getLogger(__name__)


def create_session(settings: HttpSettings) -> aiohttp.ClientSession:
    """Baut die HTTP-Session aus den übergebenen Einstellungen."""
    connector = aiohttp.TCPConnector(
        limit_per_host=4,
        enable_cleanup_closed=True,
        ttl_dns_cache=300,
    )
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=None, sock_read=settings.timeout),
        headers=settings.headers,
    )


async def fetch_json(session: aiohttp.ClientSession, url: str) -> Any:
    logger.debug(f"GET {url}")
    async with session.get(url) as response:
        response.raise_for_status()
        return await response.json(content_type=None)


async def fetch_text(session: aiohttp.ClientSession, url: str) -> str:
    logger.debug(f"GET {url}")
    async with session.get(url) as response:
        response.raise_for_status()
        return await response.text()
