from typing import List, Optional

from loguru import logger
from pydantic import BaseModel

from src.aggregation.aggregator import finalize
from src.config.settings import AppSettings, settings as default_settings
from src.decoding.decoder import decode
from src.enrichment.enricher import Enricher
from src.models.enums import PipelineState
from src.models.game import GameRecord
from src.normalization.normalizer import Normalizer
from src.scrapers.sihf_scraper import SihfScraper
from src.storage.file_sink import FileSink

RAW_EXCERPT_LIMIT = 2000


class RunResult(BaseModel):
    """Outcome of one pipeline run, as reported to the entry point."""

    state: PipelineState
    failed_in: Optional[PipelineState] = None
    records_written: int = 0
    enrichment_failures: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.PERSISTED


class Orchestrator:
    """Runs fetch -> decode -> normalize -> enrich -> aggregate once.

    Whatever happens inside the pipeline, ``run`` writes the results,
    raw-response and status artifacts and returns a RunResult instead of
    raising.
    """

    def __init__(
        self,
        scraper: SihfScraper,
        sink: FileSink,
        config: Optional[AppSettings] = None,
        normalizer: Optional[Normalizer] = None,
        enricher: Optional[Enricher] = None,
    ):
        self.config = config or default_settings
        self.scraper = scraper
        self.sink = sink
        self.normalizer = normalizer or Normalizer()
        self.enricher = enricher or Enricher(
            self.normalizer, delay_seconds=self.config.detail_delay_seconds
        )
        self.state = PipelineState.START

    def _enter(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline state: {self.state.value} -> {state.value}")
        self.state = state

    async def run(self) -> RunResult:
        self.state = PipelineState.START
        self.enricher.failures = []
        raw_text: Optional[str] = None
        final: List[GameRecord] = []
        error: Optional[BaseException] = None
        failed_in: Optional[PipelineState] = None

        try:
            self._enter(PipelineState.FETCHING)
            raw_text = await self.scraper.fetch_results_text()
            self.sink.persist(self.config.raw_artifact, raw_text)

            self._enter(PipelineState.DECODING)
            decoded = decode(raw_text)

            self._enter(PipelineState.NORMALIZING)
            records = self.normalizer.normalize(decoded)

            self._enter(PipelineState.ENRICHING)
            await self.enricher.enrich(
                records, self.scraper.fetch_game_detail, self.config.enrich_max_count
            )

            self._enter(PipelineState.AGGREGATING)
            final = finalize(records, self.config.text_filters)
        except Exception as e:
            error, failed_in = e, self.state
            final = []
            logger.exception(f"Pipeline failed while {self.state.value.lower()}: {e}")
            self._enter(PipelineState.FAILED)
        finally:
            try:
                self._write_artifacts(final, raw_text, error, failed_in)
            except Exception as e:
                logger.exception(f"Could not write run artifacts: {e}")
                error = error or e
                failed_in = failed_in or self.state
                self._enter(PipelineState.FAILED)

        if error is None:
            self._enter(PipelineState.PERSISTED)
        return RunResult(
            state=self.state,
            failed_in=failed_in,
            records_written=len(final),
            enrichment_failures=len(self.enricher.failures),
            error=_describe(error) if error else None,
        )

    def _write_artifacts(
        self,
        final: List[GameRecord],
        raw_text: Optional[str],
        error: Optional[BaseException],
        failed_in: Optional[PipelineState],
    ) -> None:
        self.sink.persist_json(
            self.config.results_artifact, [record.to_output() for record in final]
        )

        if error is None:
            self.sink.persist(self.config.status_artifact, self._success_report(final))
            return

        # A non-2xx response body travels on the transport error
        if raw_text is None:
            raw_text = getattr(error, "body", None)
            self.sink.persist(self.config.raw_artifact, raw_text or "")

        message = f"Failed while {failed_in.value.lower()}: {_describe(error)}"
        self.sink.notify_failure(message)
        lines = [
            "status: failed",
            f"state: {failed_in.value}",
            f"error: {_describe(error)}",
        ]
        if raw_text:
            excerpt = raw_text[:RAW_EXCERPT_LIMIT]
            lines += ["", f"raw response ({len(raw_text)} chars, first {len(excerpt)}):", excerpt]
        self.sink.persist(self.config.status_artifact, "\n".join(lines) + "\n")

    def _success_report(self, final: List[GameRecord]) -> str:
        lines = [
            "status: ok",
            f"records: {len(final)}",
            f"enrichment failures: {len(self.enricher.failures)}",
        ]
        lines += [f"  - {failure}" for failure in self.enricher.failures]
        if self.normalizer.last_gap is not None:
            lines.append(f"note: {self.normalizer.last_gap}")
        logger.success(f"Wrote {len(final)} record(s).")
        return "\n".join(lines) + "\n"


def _describe(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"
