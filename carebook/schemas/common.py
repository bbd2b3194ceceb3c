from decimal import Decimal
from pydantic import BaseModel, Field, PlainSerializer
from pydantic.alias_generators import to_camel
from typing import Annotated

# Decimal amount with two places, written to JSON as a number
Money = Annotated[
    Decimal,
    Field(ge=0, max_digits=10, decimal_places=2),
    PlainSerializer(float, return_type=float, when_used="json"),
]

class CamelModel(BaseModel):
    """Base schema: camelCase on the wire, snake_case in Python."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

class MessageResponse(CamelModel):
    message: str
