from typing import Any, Dict, Mapping, Optional

import httpx
from loguru import logger

from src.config.settings import AppSettings, settings as default_settings
from src.decoding.decoder import decode
from .base_scraper import Transport
from .direct import DirectHttpStrategy
from .fallback import DohCurlStrategy, DohResolver


def build_transport(config: AppSettings) -> Transport:
    """Primary direct GET, then DoH re-resolution with a curl request."""
    return Transport(
        [
            DirectHttpStrategy(timeout=config.request_timeout),
            DohCurlStrategy(
                DohResolver(config.doh_endpoint, timeout=config.request_timeout),
                curl_binary=config.curl_binary,
                timeout=config.request_timeout,
            ),
        ]
    )


def build_url(base_url: str, params: Mapping[str, Any]) -> str:
    return str(httpx.URL(base_url, params={k: str(v) for k, v in params.items()}))


class SihfScraper:
    """Client for the results list and per-game detail aliases of the statistics API."""

    def __init__(
        self,
        transport: Optional[Transport] = None,
        config: Optional[AppSettings] = None,
    ):
        self.config = config or default_settings
        self.transport = transport or build_transport(self.config)
        self.headers: Dict[str, str] = dict(self.config.request_headers)

    def results_url(self) -> str:
        return build_url(self.config.api_base_url, self.config.list_params)

    def detail_url(self, game_id: str) -> str:
        params = {
            key: value.replace("{game_id}", str(game_id))
            for key, value in self.config.detail_params.items()
        }
        return build_url(self.config.api_base_url, params)

    async def fetch_results_text(self) -> str:
        url = self.results_url()
        logger.info(f"Fetching results list: {url}")
        text = await self.transport.fetch_text(url, self.headers, validate=decode)
        logger.info(f"Received results body ({len(text)} chars).")
        return text

    async def fetch_game_detail(self, game_id: str) -> Any:
        url = self.detail_url(game_id)
        logger.debug(f"Fetching detail for game {game_id}: {url}")
        return decode(await self.transport.fetch_text(url, self.headers, validate=decode))

    async def close(self) -> None:
        await self.transport.close()
        logger.debug("Closed SIHF transport.")
