import re
from pydantic import BaseModel, model_validator
from typing import Any, Union, get_args, get_origin

INVISIBLE_CHARS_PATTERN = re.compile(
    r'[\u200e\u200f\u202a-\u202e\u2066-\u2069\ufeff]')


def deep_clean(value: Any):
    """Recursively strip strings, drop invisible chars and turn blanks into None."""

    if isinstance(value, BaseModel):
        return type(value)(**deep_clean(value.model_dump()))

    if isinstance(value, dict):
        return {k: deep_clean(v) for k, v in value.items()}

    if isinstance(value, list):
        return [deep_clean(v) for v in value]

    if isinstance(value, str):
        cleaned = INVISIBLE_CHARS_PATTERN.sub("", value).strip()
        return None if cleaned == "" else cleaned

    return value


def is_str_field(annotation) -> bool:
    origin = get_origin(annotation)
    return annotation is str or (
        origin is Union and str in get_args(annotation)
        and len([a for a in get_args(annotation) if a is not type(None)]) == 1
    )


class EmptyStringModel(BaseModel):
    """Base for query params and response envelopes.

    Blank strings coming in (query strings, form posts from the dashboard)
    are read as missing values; missing text going out is rendered as ""
    so the front end never has to null-check plain text fields.
    """

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
    }

    @model_validator(mode="before")
    @classmethod
    def clean_input(cls, values):
        if isinstance(values, dict):
            return deep_clean(values)
        return values

    @model_validator(mode="after")
    def finalize_nulls(self):
        for field_name, field in type(self).model_fields.items():
            if getattr(self, field_name) is None and is_str_field(field.annotation):
                object.__setattr__(self, field_name, "")
        return self
