from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from src.models.enums import PayloadShape
from src.models.game import GameRecord
from src.normalization.paths import extract_fields, scalar_or_none

# Candidate paths per field for object-shaped rows, tried in order.
# Upstream renames are handled by editing these tables.
OBJECT_ROW_PATHS: Dict[str, Tuple[str, ...]] = {
    "id": ("gameId", "id", "game.id", "gameID"),
    "start_time": ("startDateTime", "startTime", "dateTime", "date"),
    "league": ("league.name", "league", "leagueName", "competition.name"),
    "home_team": (
        "homeTeam.name",
        "homeTeam",
        "home",
        "teamHome.name",
        "teams.home.name",
    ),
    "away_team": (
        "awayTeam.name",
        "awayTeam",
        "away",
        "teamAway.name",
        "teams.away.name",
    ),
    "score": ("score", "result.score", "resultString"),
}

DETAIL_PATHS: Dict[str, Tuple[str, ...]] = {
    **OBJECT_ROW_PATHS,
    "venue": ("venue.name", "venue", "arena.name", "arena", "stadium.name"),
}

# Positions in array-shaped rows
IDX_WEEKDAY = 0
IDX_DATE = 1
IDX_TIME = 2
IDX_HOME = 3
IDX_AWAY = 4
IDX_RESULT = 5
IDX_STATUS = 9
IDX_IDENTIFIER = 10


class NormalizationGap(Exception):
    """Describes a response that carried no recognisable rows.

    Never raised out of the normalizer; an empty list is a valid outcome.
    """

    pass


def _at(row: Sequence[Any], index: int) -> Any:
    return row[index] if 0 <= index < len(row) else None


def _sub(descriptor: Any, key: str) -> Any:
    if not isinstance(descriptor, Mapping):
        return None
    return scalar_or_none(descriptor.get(key))


def score_from_result(descriptor: Any) -> Optional[str]:
    """Formats a result descriptor as ``home:away`` when it is a final result."""
    if _sub(descriptor, "type") != "result":
        return None
    home, away = _sub(descriptor, "homeTeam"), _sub(descriptor, "awayTeam")
    if home is None or away is None:
        return None
    return f"{_goals(home)}:{_goals(away)}"


def _goals(value: Any) -> Any:
    # JSON numbers may arrive as 3.0
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def combine_date_time(date: Any, time: Any) -> Optional[str]:
    """Turns ``01.10.2025`` and ``18:00`` into ``2025-10-01T18:00:00``."""
    if not isinstance(date, str) or not date.strip():
        return None
    try:
        if isinstance(time, str) and time.strip():
            parsed = datetime.strptime(f"{date.strip()} {time.strip()}", "%d.%m.%Y %H:%M")
            return parsed.isoformat()
        return datetime.strptime(date.strip(), "%d.%m.%Y").date().isoformat()
    except ValueError:
        logger.debug(f"Unparsable date/time pair: {date!r} {time!r}")
        return None


class Normalizer:
    """Maps the upstream list payload onto GameRecord objects."""

    def __init__(self):
        self.last_gap: Optional[NormalizationGap] = None

    def detect_shape(self, decoded: Any) -> Tuple[PayloadShape, List[Any]]:
        """Unwraps the envelope and decides the row shape from its first row."""
        rows: Optional[List[Any]] = None
        if isinstance(decoded, Mapping):
            for key in ("data", "rows"):
                if isinstance(decoded.get(key), list):
                    rows = decoded[key]
                    break
        elif isinstance(decoded, list) and decoded and isinstance(decoded[0], list):
            rows = decoded

        if rows is None:
            keys = list(decoded.keys()) if isinstance(decoded, Mapping) else type(decoded).__name__
            return self._gap(f"No 'data'/'rows' envelope found (got {keys})")
        if not rows:
            return self._gap("Envelope present but contains no rows")

        first = rows[0]
        if isinstance(first, Mapping):
            return PayloadShape.OBJECT_ROWS, rows
        if isinstance(first, (list, tuple)):
            return PayloadShape.ARRAY_ROWS, rows
        return self._gap(f"Unrecognised row type {type(first).__name__}")

    def _gap(self, message: str) -> Tuple[PayloadShape, List[Any]]:
        self.last_gap = NormalizationGap(message)
        logger.info(f"Normalization gap: {message}. Returning no records.")
        return PayloadShape.EMPTY, []

    def normalize(self, decoded: Any) -> List[GameRecord]:
        self.last_gap = None
        shape, rows = self.detect_shape(decoded)
        if shape is PayloadShape.EMPTY:
            return []

        if shape is PayloadShape.OBJECT_ROWS:
            row_type, convert = Mapping, self._normalize_object_row
        else:
            row_type, convert = (list, tuple), self._normalize_array_row

        records: List[GameRecord] = []
        for index, row in enumerate(rows):
            if not isinstance(row, row_type):
                logger.warning(
                    f"Skipping row {index}: expected {shape.value}, got {type(row).__name__}"
                )
                continue
            records.append(convert(row))

        logger.info(f"Normalized {len(records)} {shape.value} row(s).")
        return records

    def _normalize_object_row(self, row: Mapping[str, Any]) -> GameRecord:
        fields = extract_fields(row, OBJECT_ROW_PATHS)
        if fields["score"] is None:
            fields["score"] = score_from_result(row.get("result"))
        return GameRecord(**fields)

    def _normalize_array_row(self, row: Sequence[Any]) -> GameRecord:
        status = _at(row, IDX_STATUS)
        start_time = _sub(status, "startDateTime") or combine_date_time(
            _at(row, IDX_DATE), _at(row, IDX_TIME)
        )
        return GameRecord(
            id=_sub(_at(row, IDX_IDENTIFIER), "gameId"),
            start_time=start_time,
            home_team=_sub(_at(row, IDX_HOME), "name"),
            away_team=_sub(_at(row, IDX_AWAY), "name"),
            score=score_from_result(_at(row, IDX_RESULT)),
            status=_sub(status, "name"),
        )

    def extract_detail(self, decoded: Any) -> Dict[str, Any]:
        """Builds a partial record from a detail response.

        Only non-null values are returned, ready for ``GameRecord.merge``.
        """
        item = decoded
        if isinstance(decoded, Mapping) and "data" in decoded:
            inner = decoded["data"]
            if isinstance(inner, Mapping):
                item = inner
            elif isinstance(inner, list) and inner and isinstance(inner[0], Mapping):
                item = inner[0]

        fields = extract_fields(item, DETAIL_PATHS)
        if fields["score"] is None and isinstance(item, Mapping):
            fields["score"] = score_from_result(item.get("result"))
        return {key: value for key, value in fields.items() if value is not None}
