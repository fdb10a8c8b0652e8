from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Fields that are only written out when they carry a value
OPTIONAL_OUTPUT_FIELDS = ("venue", "status")

# Fields whose absence makes a record a candidate for enrichment
REQUIRED_DETAIL_FIELDS = ("home_team", "away_team", "start_time")


class GameRecord(BaseModel):
    """Represents a single scheduled or played game in canonical form."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: Optional[str] = None
    start_time: Optional[str] = Field(None, alias="startTime")
    league: Optional[str] = None
    home_team: Optional[str] = Field(None, alias="homeTeam")
    away_team: Optional[str] = Field(None, alias="awayTeam")
    score: Optional[str] = None
    venue: Optional[str] = None
    status: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: Any) -> Any:
        # Upstream ids and goals arrive as ints; everything is kept as text
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return str(value).lower()
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @property
    def missing_details(self) -> bool:
        return any(getattr(self, name) is None for name in REQUIRED_DETAIL_FIELDS)

    def merge(self, partial: Mapping[str, Any]) -> "GameRecord":
        """Fills fields from ``partial`` in place, skipping null values and the id.

        Keys may be given either by field name or by output alias.
        """
        for key, value in partial.items():
            if value is None:
                continue
            name = _ALIAS_TO_FIELD.get(key, key)
            if name == "id" or name not in type(self).model_fields:
                continue
            setattr(self, name, value)
        return self

    def to_output(self) -> Dict[str, Any]:
        """Serializes the record with camelCase keys for the results artifact."""
        data = self.model_dump(by_alias=True)
        for name in OPTIONAL_OUTPUT_FIELDS:
            if data.get(name) is None:
                data.pop(name, None)
        return data


_ALIAS_TO_FIELD = {
    field.alias: name
    for name, field in GameRecord.model_fields.items()
    if field.alias
}
