"""Common types and helpers shared across all models."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Model serialised with camelCase keys for external automation payloads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
