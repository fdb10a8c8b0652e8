import json
from typing import Iterable, List, Sequence

from loguru import logger

from src.models.game import GameRecord


def matches_filters(record: GameRecord, text_filters: Sequence[str]) -> bool:
    """Loose any-field search over the serialized record, case-insensitive."""
    needles = [f.lower() for f in text_filters if f]
    if not needles:
        return True
    haystack = json.dumps(record.to_output(), ensure_ascii=False).lower()
    return any(needle in haystack for needle in needles)


def dedupe(records: Iterable[GameRecord]) -> List[GameRecord]:
    """Drops records without an id and later duplicates of an id, keeping order."""
    seen = set()
    unique: List[GameRecord] = []
    for record in records:
        if record.id is None or record.id in seen:
            continue
        seen.add(record.id)
        unique.append(record)
    return unique


def finalize(records: Sequence[GameRecord], text_filters: Sequence[str]) -> List[GameRecord]:
    kept = [r for r in records if matches_filters(r, text_filters)]
    result = dedupe(kept)
    logger.info(
        f"Aggregated {len(records)} record(s): {len(kept)} matched filters, {len(result)} unique."
    )
    return result
