"""
Shared fixtures: per-test settings, an output sink and scraper factory.
"""

import json

import pytest

from src.config.settings import AppSettings
from src.scrapers.base_scraper import FetchStrategy, Transport
from src.scrapers.sihf_scraper import SihfScraper
from src.storage.file_sink import FileSink


@pytest.fixture
def config(tmp_path) -> AppSettings:
    return AppSettings(
        output_dir=str(tmp_path / "public"),
        detail_delay_seconds=0,
        enrich_max_count=5,
        text_filters=[],
    )


@pytest.fixture
def sink(config) -> FileSink:
    return FileSink(config.output_dir)


@pytest.fixture
def make_scraper(config):
    def _make(*strategies: FetchStrategy) -> SihfScraper:
        return SihfScraper(transport=Transport(list(strategies)), config=config)

    return _make


@pytest.fixture
def read_artifact(config):
    def _read(name: str) -> str:
        with open(f"{config.output_dir}/{name}", encoding="utf-8") as f:
            return f.read()

    return _read


@pytest.fixture
def read_results(read_artifact, config):
    def _read() -> list:
        return json.loads(read_artifact(config.results_artifact))

    return _read
