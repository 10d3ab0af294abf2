from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

# Decimal in Python, plain JSON number on the wire (pydantic would otherwise
# emit decimals as strings).
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ApiModel(BaseModel):
    """
    Base for every record exchanged with the server.

    The API speaks camelCase JSON; attributes stay snake_case in Python.
    Either spelling is accepted on input, and to_wire() emits camelCase.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
