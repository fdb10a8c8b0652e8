import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional

from loguru import logger

from src.models.game import GameRecord
from src.normalization.normalizer import Normalizer

DetailFetcher = Callable[[str], Awaitable[Any]]


class EnrichmentFailure(Exception):
    """A detail lookup for one record failed; the record keeps its fields."""

    def __init__(self, game_id: str, cause: BaseException):
        super().__init__(f"Detail fetch for game {game_id} failed: {cause}")
        self.game_id = game_id
        self.cause = cause


class Enricher:
    """Fills gaps in incomplete records from the per-game detail endpoint.

    Requests are issued one at a time with a fixed pause before each, and
    at most ``max_count`` records are looked up per run.
    """

    def __init__(
        self,
        normalizer: Optional[Normalizer] = None,
        delay_seconds: float = 0.25,
    ):
        self.normalizer = normalizer or Normalizer()
        self.delay_seconds = delay_seconds
        self.failures: List[EnrichmentFailure] = []

    @staticmethod
    def select_candidates(records: List[GameRecord], max_count: int) -> List[GameRecord]:
        candidates = [r for r in records if r.missing_details]
        return candidates[:max(max_count, 0)]

    async def enrich(
        self,
        records: List[GameRecord],
        detail_fetcher: DetailFetcher,
        max_count: int,
    ) -> List[GameRecord]:
        self.failures = []
        candidates = self.select_candidates(records, max_count)
        if not candidates:
            logger.info("No records need enrichment.")
            return records

        logger.info(
            f"Enriching {len(candidates)} of {len(records)} record(s) from the detail endpoint."
        )
        enriched = 0
        for record in candidates:
            if record.id is None:
                continue
            await asyncio.sleep(self.delay_seconds)
            try:
                decoded = await detail_fetcher(record.id)
                partial: Dict[str, Any] = self.normalizer.extract_detail(decoded)
            except Exception as e:
                failure = EnrichmentFailure(record.id, e)
                self.failures.append(failure)
                logger.warning(f"{failure}. Keeping the list fields.")
                continue
            record.merge(partial)
            enriched += 1
            logger.debug(f"Merged detail fields {sorted(partial)} into game {record.id}")

        logger.success(
            f"Enrichment finished: {enriched} merged, {len(self.failures)} failed."
        )
        return records
