from typing import Dict, Optional

import httpx
from loguru import logger

from .base_scraper import FetchStrategy, TransportError, truncate_body


class DirectHttpStrategy(FetchStrategy):
    """Plain GET through an httpx client using the system resolver."""

    name = "direct"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 30.0):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
        )

    async def fetch_text(self, url: str, headers: Dict[str, str]) -> str:
        try:
            response = await self.client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise TransportError(
                f"Request to {url} failed: {e!r}", code=type(e).__name__
            ) from e
        except Exception as e:
            logger.exception(f"Unexpected error requesting {url}: {e}")
            raise TransportError(
                f"Unexpected error requesting {url}: {e!r}", code=type(e).__name__
            ) from e

        # The body is read whatever the status so failures can be inspected
        text = response.text
        logger.debug(
            f"Direct response {response.status_code} ({len(text)} chars) for {url}"
        )
        if not response.is_success:
            raise TransportError(
                f"HTTP {response.status_code}: {truncate_body(text)}",
                code=f"HTTP_{response.status_code}",
                body=truncate_body(text),
            )
        return text

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
            logger.debug("Closed direct HTTP client.")
