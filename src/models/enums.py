from enum import Enum


class PayloadShape(str, Enum):
    """Row layout of a decoded list response, decided once per run."""

    OBJECT_ROWS = "OBJECT_ROWS"  # each row is a mapping with nested paths
    ARRAY_ROWS = "ARRAY_ROWS"  # each row is a positional sequence
    EMPTY = "EMPTY"  # no recognised envelope or no rows


class PipelineState(str, Enum):
    START = "Start"
    FETCHING = "Fetching"
    DECODING = "Decoding"
    NORMALIZING = "Normalizing"
    ENRICHING = "Enriching"
    AGGREGATING = "Aggregating"
    PERSISTED = "Persisted"
    FAILED = "Failed"
