"""
Field Schema Model: pydantic models for list field definitions.

One model per field type, discriminated on ``type``. The parser validates raw
schema documents into these models once; the validator and the query layer
only ever see the closed set below.

Authoring documents use camelCase (displayOrder, defaultValue, minLength...).
Models accept those aliases and expose snake_case attributes.
"""

import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from listdata.dsl.values import parse_date

# =============================================================================
# Vocabulary
# =============================================================================

FIELD_TYPES: tuple[str, ...] = (
    "text",
    "email",
    "tel",
    "url",
    "number",
    "date",
    "datetime",
    "boolean",
    "select",
    "multiselect",
    "textarea",
)

STRING_TYPES: frozenset[str] = frozenset({"text", "textarea", "tel", "email", "url"})
CHOICE_TYPES: frozenset[str] = frozenset({"select", "multiselect"})
DATE_TYPES: frozenset[str] = frozenset({"date", "datetime"})

VISIBILITY_OPERATORS: tuple[str, ...] = ("equals", "notEquals", "isEmpty", "isNotEmpty")

VisibilityOperator = Literal["equals", "notEquals", "isEmpty", "isNotEmpty"]


# =============================================================================
# Visibility
# =============================================================================


class VisibilityCondition(BaseModel):
    """Single-field condition gating display and required-ness."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    field: str = Field(min_length=1)
    operator: VisibilityOperator
    value: Any = None


# =============================================================================
# Constraint sets
# =============================================================================


class StringRules(BaseModel):
    """Constraints for text-like fields."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    pattern: str | None = None
    min_length: int | None = Field(default=None, ge=0, alias="minLength")
    max_length: int | None = Field(default=None, ge=0, alias="maxLength")

    @field_validator("pattern")
    @classmethod
    def pattern_compiles(cls, v: str | None) -> str | None:
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"pattern does not compile: {e}") from e
        return v

    @model_validator(mode="after")
    def bounds_ordered(self) -> "StringRules":
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError("minLength must not exceed maxLength")
        return self


class NumberRules(BaseModel):
    """Constraints for number fields."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    min: int | float | None = None
    max: int | float | None = None
    step: int | float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def bounds_ordered(self) -> "NumberRules":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min must not exceed max")
        return self


class DateRules(BaseModel):
    """Inclusive bounds for date / datetime fields, given as date strings."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    min: str | None = None
    max: str | None = None

    @field_validator("min", "max")
    @classmethod
    def bounds_are_dates(cls, v: str | None) -> str | None:
        if v is not None and parse_date(v) is None:
            raise ValueError(f"{v!r} is not a date")
        return v


# =============================================================================
# Field variants
# =============================================================================


class BaseField(BaseModel):
    """Attributes shared by every field type."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    key: str = Field(min_length=1)
    label: str = Field(min_length=1)
    required: bool = False
    display_order: int = Field(default=0, alias="displayOrder")
    default_value: Any = Field(default=None, alias="defaultValue")
    help_text: str | None = Field(default=None, alias="helpText")
    placeholder: str | None = None
    visible: bool = True
    visibility: VisibilityCondition | None = None

    @field_validator("visibility", mode="before")
    @classmethod
    def unwrap_condition(cls, v: Any) -> Any:
        # Stored documents nest the condition: {"condition": {...}}
        if isinstance(v, dict) and "condition" in v and "field" not in v:
            return v["condition"]
        return v

    @field_validator("validation", mode="before", check_fields=False)
    @classmethod
    def null_rules_to_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class TextField(BaseField):
    type: Literal["text"]
    validation: StringRules = Field(default_factory=StringRules)


class TextareaField(BaseField):
    type: Literal["textarea"]
    validation: StringRules = Field(default_factory=StringRules)


class TelField(BaseField):
    type: Literal["tel"]
    validation: StringRules = Field(default_factory=StringRules)


class EmailField(BaseField):
    type: Literal["email"]
    validation: StringRules = Field(default_factory=StringRules)


class UrlField(BaseField):
    type: Literal["url"]
    validation: StringRules = Field(default_factory=StringRules)


class NumberField(BaseField):
    type: Literal["number"]
    validation: NumberRules = Field(default_factory=NumberRules)


class DateField(BaseField):
    type: Literal["date"]
    validation: DateRules = Field(default_factory=DateRules)


class DatetimeField(BaseField):
    type: Literal["datetime"]
    validation: DateRules = Field(default_factory=DateRules)


class BooleanField(BaseField):
    type: Literal["boolean"]


class SelectField(BaseField):
    type: Literal["select"]
    options: list[str] = Field(min_length=1)


class MultiselectField(BaseField):
    type: Literal["multiselect"]
    options: list[str] = Field(min_length=1)


ParsedField = Annotated[
    Union[
        TextField,
        TextareaField,
        TelField,
        EmailField,
        UrlField,
        NumberField,
        DateField,
        DatetimeField,
        BooleanField,
        SelectField,
        MultiselectField,
    ],
    Field(discriminator="type"),
]

FIELD_ADAPTER: TypeAdapter = TypeAdapter(ParsedField)


class ParsedSchema(BaseModel):
    """A normalized list schema. ``fields`` are in presentation order."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str | None = None
    fields: list[ParsedField]

    def field_map(self) -> dict[str, BaseField]:
        return {f.key: f for f in self.fields}

    def keys(self) -> list[str]:
        return [f.key for f in self.fields]
