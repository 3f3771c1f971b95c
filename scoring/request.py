from typing import Mapping, Optional

from pydantic import BaseModel

from scoring.exceptions import ConfigError


class ScoreRequest(BaseModel):
    """Parsed `/scores` query parameters."""
    event_id: int
    year: int
    use_cache: bool = True
    want_json: bool = False
    expanded: bool = False


def _parse_required_int(value: Optional[str], message: str) -> int:
    if value is None:
        raise ConfigError(message)
    try:
        return int(value.strip())
    except ValueError as e:
        raise ConfigError(message) from e


def _parse_flag(value: Optional[str]) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true"}


def parse_score_request(query: Mapping[str, str]) -> ScoreRequest:
    """`event` and `yr` are required integers; only `cache=0` disables the cache."""
    return ScoreRequest(
        event_id=_parse_required_int(query.get("event"), "espn event parameter is required"),
        year=_parse_required_int(query.get("yr"), "yr (year) parameter is required"),
        use_cache=query.get("cache") != "0",
        want_json=_parse_flag(query.get("json")),
        expanded=_parse_flag(query.get("expanded")),
    )
