"""
Base model for payloads accepted over HTTP.

Inputs validate under the snake_case field name or its camelCase alias
(``bucket_minutes`` / ``bucketMinutes``). Unknown keys are rejected so a
misspelled parameter never falls back to its default.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Request-side model accepting both field names and camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )
