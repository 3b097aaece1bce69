"""
Shared pydantic bases for request and response bodies, plus the Money type.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic_core import core_schema

CENT = Decimal("0.01")


class StandardizedModel(BaseModel):
    """Response base: reads ORM objects, serializes enums by value."""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class StrictModel(BaseModel):
    """Request base. Unknown fields are rejected so typos surface as 422s."""

    model_config = ConfigDict(
        extra="forbid",
        validate_default=True,
        validate_assignment=True,
    )


def _to_cents(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError("Money cannot be a boolean")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{value!r} is not a valid amount")
    if not amount.is_finite():
        raise ValueError("Money must be a finite amount")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class Money(Decimal):
    """Cash amount rounded to cents and rendered as a "12.50" style string."""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        accepted = core_schema.union_schema(
            [
                core_schema.int_schema(),
                core_schema.float_schema(),
                core_schema.str_schema(),
                core_schema.is_instance_schema(Decimal),
            ]
        )
        return core_schema.no_info_after_validator_function(
            _to_cents,
            accepted,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda amount: f"{Decimal(amount):.2f}",
                info_arg=False,
                return_schema=core_schema.str_schema(),
            ),
        )
