import math
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def _finite_or_none(value: float) -> Optional[float]:
    # +inf marks "unreachable"; JSON has no representation for it
    if value is None or not math.isfinite(value):
        return None
    return value


UnboundedFloat = Annotated[
    float,
    PlainSerializer(_finite_or_none, return_type=Optional[float], when_used="json"),
]


class CamelModel(BaseModel):
    """
    Base for API-facing models.

    Attributes are snake_case in Python and camelCase on the wire. Requests
    may use either spelling.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
