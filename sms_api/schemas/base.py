# sms_api/schemas/base.py
from datetime import datetime, timezone
from typing import ClassVar, Tuple
from uuid import UUID
from pydantic import BaseModel, field_validator, model_validator


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class RequestSchema(BaseModel):
    """Request bodies store enum values as plain strings and datetimes as naive UTC."""
    model_config = {"use_enum_values": True, "validate_default": True, "str_strip_whitespace": True}

    @field_validator('*', mode='after')
    @classmethod
    def normalize_datetimes(cls, v):
        if isinstance(v, datetime):
            return to_naive_utc(v)
        return v


class UpdateSchema(RequestSchema):
    """Partial update body. Only the fields named in nullable_fields may be cleared with null."""
    nullable_fields: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode='after')
    def reject_null_required(self):
        cleared = sorted(
            name for name in self.model_fields_set
            if getattr(self, name) is None and name not in self.nullable_fields
        )
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


class ResponseSchema(BaseModel):
    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
