"""Validation-rule models.

Every rule of the validation dialect becomes one pydantic model; the
``Rule`` annotation is the tagged union of all of them, keyed on ``type``.
Documentation metadata (``$$oa`` in rule input) is kept apart from the
validation constraints in ``RuleMeta``.
"""

import re
from collections.abc import Mapping
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_validator,
)

from .shorthand import expand_shorthand

Number = Union[int, float]


def _pattern_source(value: Any) -> Any:
    if isinstance(value, re.Pattern):
        return value.pattern
    return value


class RuleMeta(BaseModel):
    """Documentation-only metadata attached to a rule."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    description: str | None = None
    summary: str | None = None
    deprecated: bool | None = None
    in_: Literal["query", "body"] | None = Field(None, alias="in")


class BaseRule(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    optional: bool = False
    default: Any = None
    meta: RuleMeta | None = Field(None, alias="$$oa")


class StringRule(BaseRule):
    type: Literal["string"] = "string"
    min: int | None = None
    max: int | None = None
    length: int | None = None
    pattern: str | None = None
    contains: str | None = None
    enum: list[Any] | None = None
    numeric: bool = False
    alpha: bool = False
    alphanum: bool = False
    alphadash: bool = False
    single_line: bool = Field(False, alias="singleLine")
    hex: bool = False
    base64: bool = False

    @field_validator("pattern", mode="before")
    @classmethod
    def pattern_source(cls, value: Any) -> Any:
        return _pattern_source(value)


class NumberRule(BaseRule):
    type: Literal["number"] = "number"
    min: Number | None = None
    max: Number | None = None
    equal: Number | None = None
    positive: bool = False
    negative: bool = False
    integer: bool = False
    enum: list[Any] | None = None


class BooleanRule(BaseRule):
    type: Literal["boolean"] = "boolean"


class ArrayRule(BaseRule):
    type: Literal["array"] = "array"
    items: Optional["Rule"] = None
    min: int | None = None
    max: int | None = None
    length: int | None = None
    unique: bool | None = None
    enum: list[Any] | None = None


class ObjectRule(BaseRule):
    type: Literal["object"] = "object"
    props: Optional[dict[str, "Rule"]] = None
    properties: Optional[dict[str, "Rule"]] = None
    min_props: int | None = Field(None, alias="minProps")
    max_props: int | None = Field(None, alias="maxProps")

    @property
    def field_rules(self) -> dict[str, "Rule"] | None:
        return self.props if self.props is not None else self.properties


class RecordRule(BaseRule):
    type: Literal["record"] = "record"
    key: Optional["Rule"] = None
    value: Optional["Rule"] = None


class TupleRule(BaseRule):
    type: Literal["tuple"] = "tuple"
    items: Optional[list["Rule"]] = None


class EnumRule(BaseRule):
    type: Literal["enum"] = "enum"
    values: list[Any] = Field(default_factory=list)


class DateRule(BaseRule):
    type: Literal["date"] = "date"
    convert: bool = False


class EmailRule(BaseRule):
    type: Literal["email"] = "email"
    mode: Literal["quick", "precise"] = "quick"
    min: int | None = None
    max: int | None = None


class UrlRule(BaseRule):
    type: Literal["url"] = "url"


class UuidRule(BaseRule):
    type: Literal["uuid"] = "uuid"
    version: int | None = None


class MacRule(BaseRule):
    type: Literal["mac"] = "mac"


class CurrencyRule(BaseRule):
    type: Literal["currency"] = "currency"
    currency_symbol: str | None = Field(None, alias="currencySymbol")
    symbol_optional: bool = Field(False, alias="symbolOptional")
    thousand_separator: str | None = Field(None, alias="thousandSeparator")
    decimal_separator: str | None = Field(None, alias="decimalSeparator")
    custom_regex: str | None = Field(None, alias="customRegex")

    @field_validator("custom_regex", mode="before")
    @classmethod
    def custom_regex_source(cls, value: Any) -> Any:
        return _pattern_source(value)


class LuhnRule(BaseRule):
    type: Literal["luhn"] = "luhn"


class ObjectIdRule(BaseRule):
    type: Literal["objectID"] = "objectID"


class EqualRule(BaseRule):
    type: Literal["equal"] = "equal"
    value: Any = None
    field: str | None = None
    strict: bool = False


class MultiRule(BaseRule):
    type: Literal["multi"] = "multi"
    rules: list["Rule"] = Field(default_factory=list)


class AnyRule(BaseRule):
    type: Literal["any"] = "any"


class ForbiddenRule(BaseRule):
    type: Literal["forbidden"] = "forbidden"


class FunctionRule(BaseRule):
    type: Literal["function"] = "function"


class ClassRule(BaseRule):
    model_config = ConfigDict(populate_by_name=True, extra="allow", arbitrary_types_allowed=True)

    type: Literal["class"] = "class"


class CustomRule(BaseRule):
    model_config = ConfigDict(populate_by_name=True, extra="allow", arbitrary_types_allowed=True)

    type: Literal["custom"] = "custom"


class GenericRule(BaseRule):
    """A rule of a kind this package has no dedicated model for."""

    model_config = ConfigDict(populate_by_name=True, extra="allow", arbitrary_types_allowed=True)


RULE_MODELS: dict[str, type[BaseRule]] = {
    "string": StringRule,
    "number": NumberRule,
    "boolean": BooleanRule,
    "array": ArrayRule,
    "object": ObjectRule,
    "record": RecordRule,
    "tuple": TupleRule,
    "enum": EnumRule,
    "date": DateRule,
    "email": EmailRule,
    "url": UrlRule,
    "uuid": UuidRule,
    "mac": MacRule,
    "currency": CurrencyRule,
    "luhn": LuhnRule,
    "objectID": ObjectIdRule,
    "equal": EqualRule,
    "multi": MultiRule,
    "any": AnyRule,
    "forbidden": ForbiddenRule,
    "function": FunctionRule,
    "class": ClassRule,
    "custom": CustomRule,
}


def _rule_kind(value: Any) -> str:
    kind = value.get("type") if isinstance(value, Mapping) else getattr(value, "type", None)
    return kind if kind in RULE_MODELS else "generic"


_TaggedRule = Annotated[
    Union[
        Annotated[StringRule, Tag("string")],
        Annotated[NumberRule, Tag("number")],
        Annotated[BooleanRule, Tag("boolean")],
        Annotated[ArrayRule, Tag("array")],
        Annotated[ObjectRule, Tag("object")],
        Annotated[RecordRule, Tag("record")],
        Annotated[TupleRule, Tag("tuple")],
        Annotated[EnumRule, Tag("enum")],
        Annotated[DateRule, Tag("date")],
        Annotated[EmailRule, Tag("email")],
        Annotated[UrlRule, Tag("url")],
        Annotated[UuidRule, Tag("uuid")],
        Annotated[MacRule, Tag("mac")],
        Annotated[CurrencyRule, Tag("currency")],
        Annotated[LuhnRule, Tag("luhn")],
        Annotated[ObjectIdRule, Tag("objectID")],
        Annotated[EqualRule, Tag("equal")],
        Annotated[MultiRule, Tag("multi")],
        Annotated[AnyRule, Tag("any")],
        Annotated[ForbiddenRule, Tag("forbidden")],
        Annotated[FunctionRule, Tag("function")],
        Annotated[ClassRule, Tag("class")],
        Annotated[CustomRule, Tag("custom")],
        Annotated[GenericRule, Tag("generic")],
    ],
    Discriminator(_rule_kind),
]

Rule = Annotated[_TaggedRule, BeforeValidator(expand_shorthand)]

for _model in (ArrayRule, ObjectRule, RecordRule, TupleRule, MultiRule):
    _model.model_rebuild()


class RuleSchema(BaseModel):
    """The rule schema of an action: named fields or one root rule."""

    rules: dict[str, Rule] = Field(default_factory=dict)
    root: Rule | None = None
    meta: RuleMeta | None = None

    @property
    def is_root(self) -> bool:
        return self.root is not None

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> "RuleSchema":
        """Build a schema from raw input, splitting off the ``$$`` keys."""
        meta = raw.get("$$oa")
        body = {k: v for k, v in raw.items() if not k.startswith("$$")}
        if raw.get("$$root") is True:
            # the root rule documents itself with the schema metadata
            if meta is not None:
                body["$$oa"] = meta
            return cls(root=body, meta=meta)
        return cls(rules=body, meta=meta)


def parse_rule(raw: Any) -> BaseRule:
    """Validate one rule (full or shorthand form) into its model."""
    return _RuleHolder(rule=raw).rule


class _RuleHolder(BaseModel):
    rule: Rule
