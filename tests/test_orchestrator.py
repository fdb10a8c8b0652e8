"""
End-to-end pipeline runs against scripted upstream responses.
"""

import json

import pytest

from src.models.enums import PipelineState
from src.pipeline.orchestrator import Orchestrator
from src.scrapers.base_scraper import ResolutionError, TransportError
from src.storage.file_sink import FileSink
from tests.fakes import ScriptedStrategy

SCENARIO_1 = json.dumps(
    {
        "data": [
            {
                "gameId": 1,
                "homeTeam": {"name": "EHC Sursee"},
                "awayTeam": {"name": "X"},
                "startDateTime": "2025-10-01T18:00:00Z",
            }
        ]
    }
)

SCENARIO_3 = (
    'foo({"rows":[[ "Mon","01.10.2025","18:00",{"name":"A"},{"name":"B"},'
    '{"type":"result","homeTeam":3,"awayTeam":2},null,null,null,'
    '{"name":"Final","startDateTime":"2025-10-01T18:00:00Z"},{"gameId":9}]]});'
)


@pytest.fixture
def run(make_scraper, sink, config):
    async def _run(*strategies):
        orchestrator = Orchestrator(make_scraper(*strategies), sink, config=config)
        return await orchestrator.run()

    return _run


class TestSuccessfulRuns:
    async def test_object_rows_without_enrichment(self, run, read_results, read_artifact, config):
        strategy = ScriptedStrategy({"results": SCENARIO_1})

        result = await run(strategy)

        assert result.state is PipelineState.PERSISTED
        assert result.records_written == 1
        assert read_results() == [
            {
                "id": "1",
                "startTime": "2025-10-01T18:00:00Z",
                "league": None,
                "homeTeam": "EHC Sursee",
                "awayTeam": "X",
                "score": None,
            }
        ]
        assert strategy.detail_calls() == []
        assert read_artifact(config.raw_artifact) == SCENARIO_1
        assert "records: 1" in read_artifact(config.status_artifact)

    async def test_duplicate_ids_keep_first(self, run, read_results):
        body = json.dumps(
            {
                "data": [
                    {"gameId": 5, "homeTeam": "First", "awayTeam": "B", "startDateTime": "t"},
                    {"gameId": 5, "homeTeam": "Second", "awayTeam": "B", "startDateTime": "t"},
                ]
            }
        )
        await run(ScriptedStrategy({"results": body}))
        results = read_results()
        assert [r["id"] for r in results] == ["5"]
        assert results[0]["homeTeam"] == "First"

    async def test_callback_wrapped_array_rows(self, run, read_results):
        await run(ScriptedStrategy({"results": SCENARIO_3}))
        assert read_results() == [
            {
                "id": "9",
                "startTime": "2025-10-01T18:00:00Z",
                "league": None,
                "homeTeam": "A",
                "awayTeam": "B",
                "score": "3:2",
                "status": "Final",
            }
        ]

    async def test_enrichment_fills_gaps(self, run, read_results):
        body = json.dumps({"data": [{"gameId": 2, "homeTeam": {"name": "A"}}]})
        detail = json.dumps(
            {
                "data": {
                    "awayTeam": {"name": "B"},
                    "startDateTime": "2025-10-02T19:45:00Z",
                    "venue": {"name": "Stadthalle"},
                }
            }
        )
        strategy = ScriptedStrategy({"results": body, "gameDetail": {"2": detail}})

        result = await run(strategy)

        assert result.ok
        (record,) = read_results()
        assert record["homeTeam"] == "A"
        assert record["awayTeam"] == "B"
        assert record["startTime"] == "2025-10-02T19:45:00Z"
        assert record["venue"] == "Stadthalle"
        assert len(strategy.detail_calls()) == 1

    async def test_enrichment_failure_is_not_fatal(self, run, read_results, read_artifact, config):
        body = json.dumps({"data": [{"gameId": 2, "homeTeam": {"name": "A"}}]})
        strategy = ScriptedStrategy(
            {"results": body, "gameDetail": {"2": TransportError("gone", code="HTTP_404")}}
        )

        result = await run(strategy)

        assert result.ok
        assert result.enrichment_failures == 1
        assert read_results()[0]["homeTeam"] == "A"
        assert "enrichment failures: 1" in read_artifact(config.status_artifact)

    async def test_text_filters_apply(self, run, read_results, config):
        config.text_filters = ["sursee"]
        body = json.dumps(
            {
                "data": [
                    {"gameId": 1, "homeTeam": "EHC Sursee", "awayTeam": "B", "startDateTime": "t"},
                    {"gameId": 2, "homeTeam": "HC Luzern", "awayTeam": "C", "startDateTime": "t"},
                ]
            }
        )
        await run(ScriptedStrategy({"results": body}))
        assert [r["id"] for r in read_results()] == ["1"]

    async def test_malformed_primary_body_uses_fallback(self, run, read_results, read_artifact, config):
        direct = ScriptedStrategy({"results": "<html>captcha</html>"}, name="direct")
        fallback = ScriptedStrategy({"results": SCENARIO_1}, name="doh+curl")

        result = await run(direct, fallback)

        assert result.ok
        assert [r["id"] for r in read_results()] == ["1"]
        assert len(fallback.calls) == 1
        assert read_artifact(config.raw_artifact) == SCENARIO_1

    async def test_malformed_detail_body_uses_fallback(self, run, read_results):
        body = json.dumps({"data": [{"gameId": 2, "homeTeam": {"name": "A"}}]})
        detail = json.dumps({"data": {"awayTeam": {"name": "B"}, "startDateTime": "t"}})
        direct = ScriptedStrategy(
            {"results": body, "gameDetail": {"2": "<html>rate limited</html>"}}, name="direct"
        )
        fallback = ScriptedStrategy({"gameDetail": {"2": detail}}, name="doh+curl")

        result = await run(direct, fallback)

        assert result.enrichment_failures == 0
        assert read_results()[0]["awayTeam"] == "B"

    async def test_off_season_envelope_is_empty_success(self, run, read_results, read_artifact, config):
        result = await run(ScriptedStrategy({"results": json.dumps({"message": "no games"})}))
        assert result.ok
        assert read_results() == []
        assert "note:" in read_artifact(config.status_artifact)


class TestFailedRuns:
    async def test_both_transports_fail(self, run, read_results, read_artifact, config, sink):
        direct = ScriptedStrategy(
            error=TransportError("connection refused", code="ConnectError"), name="direct"
        )
        fallback = ScriptedStrategy(
            error=ResolutionError("No A record for data.sihf.ch"), name="doh+curl"
        )

        result = await run(direct, fallback)

        assert result.state is PipelineState.FAILED
        assert result.failed_in is PipelineState.FETCHING
        assert not result.ok
        assert read_results() == []
        status = read_artifact(config.status_artifact)
        assert "connection refused" in status
        assert "ConnectError" in status
        assert "No A record for data.sihf.ch" in status
        assert "RESOLUTION" in status
        assert sink.last_failure is not None

    async def test_non_2xx_body_is_kept_for_forensics(self, run, read_artifact, config):
        direct = ScriptedStrategy(
            error=TransportError("HTTP 503: maintenance", code="HTTP_503", body="maintenance"),
            name="direct",
        )
        fallback = ScriptedStrategy(error=ResolutionError("No A record"), name="doh+curl")

        await run(direct, fallback)

        assert read_artifact(config.raw_artifact) == "maintenance"
        assert "maintenance" in read_artifact(config.status_artifact)

    async def test_undecodable_body(self, run, read_results, read_artifact, config):
        html = "<html><body>Bad gateway</body></html>"

        result = await run(ScriptedStrategy({"results": html}))

        assert result.failed_in is PipelineState.FETCHING
        assert read_results() == []
        assert read_artifact(config.raw_artifact) == html
        status = read_artifact(config.status_artifact)
        assert "DECODE" in status
        assert "Bad gateway" in status

    async def test_unwritable_output_does_not_raise(self, make_scraper, config, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")

        orchestrator = Orchestrator(
            make_scraper(ScriptedStrategy({"results": SCENARIO_1})),
            FileSink(blocker),
            config=config,
        )
        result = await orchestrator.run()

        assert result.state is PipelineState.FAILED
        assert result.error is not None
