"""Base models for bridge payloads."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelCaseModel(BaseModel):
    """Base model that uses camelCase for field aliases to match the bridged JSON APIs."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
