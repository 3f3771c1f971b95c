from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict


def utc_now() -> datetime:
    """Current time as a naive UTC datetime (the format snapshots are stamped with)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseScoreModel(BaseModel):
    """Base for scoreboard models: assignments are re-validated, aliases accepted."""
    model_config = ConfigDict(validate_assignment=True, populate_by_name=True)
