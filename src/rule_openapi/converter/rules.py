"""Rule converter — maps validation rules to OpenAPI schema fragments.

Each rule kind has one mapper in a lookup table. A mapper returns ``None``
when the kind cannot be documented (forbidden, function, class, custom, or a
date without conversion); callers drop such fields from the schema.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable

from rule_openapi.converter.fragment import Fragment
from rule_openapi.errors import ConverterNotInitializedError
from rule_openapi.rules.base import (
    AnyRule,
    ArrayRule,
    BaseRule,
    BooleanRule,
    CurrencyRule,
    DateRule,
    EmailRule,
    EnumRule,
    EqualRule,
    LuhnRule,
    MacRule,
    MultiRule,
    NumberRule,
    ObjectIdRule,
    ObjectRule,
    RecordRule,
    RuleSchema,
    StringRule,
    TupleRule,
    UrlRule,
    UuidRule,
    parse_rule,
)

Mapper = Callable[[Any, Mapping[str, Any] | None], Fragment | None]

EMAIL_PRECISE_PATTERN = (
    r'^(([^<>()[\]\\.,;:\s@"]+(\.[^<>()[\]\\.,;:\s@"]+)*)|(".+"))@'
    r"((\[[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}])|(([a-zA-Z\-0-9]+\.)+[a-zA-Z]{2,}))$"
)
EMAIL_BASIC_PATTERN = r"^\S+@\S+\.\S+$"
MAC_PATTERN = (
    r"^((([a-f0-9][a-f0-9]+-){5}|([a-f0-9][a-f0-9]+:){5})([a-f0-9][a-f0-9])$)"
    r"|(^([a-f0-9][a-f0-9][a-f0-9][a-f0-9]+[.]){2}([a-f0-9][a-f0-9][a-f0-9][a-f0-9]))$"
)
MAC_EXAMPLES = ["01:C8:95:4B:65:FE", "01C8.954B.65FE", "01-C8-95-4B-65-FE"]
LUHN_PATTERN = r"^(\d{1,4} ){3}\d{1,4}$"
CURRENCY_PATTERN_TEMPLATE = r"(?=.*\d)^(-?~1|~1-?)(([0-9]\d{0,2}(~2\d{3})*)|0)?(\~3\d{1,2})?$"

UUID_EXAMPLES = {
    0: "00000000-0000-0000-0000-000000000000",
    1: "45745c60-7b1a-11e8-9c9c-2d42b21b1a3e",
    2: "9a7b330a-a736-21e5-af7f-feaf819cdc9f",
    3: "9125a8dc-52ee-365b-a5aa-81b0b3681cf6",
    4: "10ba038e-48da-487b-96e8-8d3b99b6d18a",
    5: "fdda765f-fc57-5604-a269-52a7df8164ec",
    6: "a9030619-8514-6970-e0f9-81b9ceb08a5f",
}
DEFAULT_OBJECT_ID = "507f1f77bcf86cd799439011"

# flag -> (pattern, format, example); the first flag set wins
STRING_CLASSES = (
    ("numeric", r"^[0-9]+$", "numeric", "12345"),
    ("alpha", r"^[a-zA-Z]+$", "alpha", "abcdef"),
    ("alphanum", r"^[a-zA-Z0-9]+$", "alphanum", "abc123"),
    ("alphadash", r"^[a-zA-Z0-9_-]+$", "alphadash", "abc-123"),
    ("single_line", r"^[^\r\n]*$", "single-line", "abc 123"),
    ("hex", r"^([0-9A-Fa-f]{2})+$", "hex", "48656c6c6f20576f726c64"),
    ("base64", r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$", "byte", "aGVsbG8gd29ybGQ="),
)


class RuleConverter:
    """Converts rule nodes into schema fragments."""

    def __init__(self, extra_mappers: Mapping[str, Mapper] | None = None):
        self.mappers: dict[str, Mapper] = {
            "any": self._map_any,
            "array": self._map_array,
            "boolean": self._map_boolean,
            "class": _omit,
            "currency": self._map_currency,
            "custom": _omit,
            "date": self._map_date,
            "email": self._map_email,
            "enum": self._map_enum,
            "equal": self._map_equal,
            "forbidden": _omit,
            "function": _omit,
            "luhn": self._map_luhn,
            "mac": self._map_mac,
            "multi": self._map_multi,
            "number": self._map_number,
            "object": self._map_object,
            "objectID": self._map_object_id,
            "record": self._map_record,
            "string": self._map_string,
            "tuple": self._map_tuple,
            "url": self._map_url,
            "uuid": self._map_uuid,
        }
        self.mappers.update(extra_mappers or {})

    def convert(
        self,
        rule: Any,
        inherited: Mapping[str, Any] | None = None,
        siblings: Mapping[str, Any] | None = None,
    ) -> Fragment | None:
        """Convert one rule (model or raw/shorthand form).

        ``inherited`` supplies constraints the rule does not set itself;
        ``siblings`` is the enclosing object's field map, used to resolve
        ``equal`` rules that point at another field.
        """
        if not self.mappers or "string" not in self.mappers:
            raise ConverterNotInitializedError(
                f"bad initialisation: mappers={bool(self.mappers)}, "
                f"string mapper={'string' in (self.mappers or {})}"
            )

        if not isinstance(rule, BaseRule):
            rule = parse_rule(rule)
        if inherited:
            rule = _inherit(rule, inherited)

        mapper = self.mappers.get(rule.type)
        if mapper is None:
            mapper = self.mappers["string"]
            rule = _as_string_rule(rule)

        fragment = mapper(rule, siblings)
        if fragment is None:
            return None

        if rule.optional:
            fragment.optional = True
        if rule.meta is not None:
            fragment.meta = rule.meta
        return fragment

    def convert_schema(
        self,
        rules: Mapping[str, Any],
        siblings: Mapping[str, Any] | None = None,
    ) -> dict[str, Fragment]:
        """Convert sibling field rules, dropping the ones with no fragment.

        ``siblings`` defaults to ``rules`` itself; pass the full field map when
        converting only part of an object.
        """
        fragments = {}
        for name, rule in rules.items():
            fragment = self.convert(rule, siblings=rules if siblings is None else siblings)
            if fragment is not None:
                fragments[name] = fragment
        return fragments

    def convert_root(self, schema: RuleSchema) -> Fragment | None:
        """Convert the single rule of a root schema."""
        if not schema.is_root:
            raise ValueError("convert_root only supports root schemas")
        return self.convert(schema.root)

    # -- mappers ---------------------------------------------------------------

    def _map_any(self, rule: AnyRule, siblings=None) -> Fragment:
        return Fragment(keywords={"default": rule.default, "examples": _examples(rule.default)})

    def _map_array(self, rule: ArrayRule, siblings=None) -> Fragment:
        items = self.convert(rule.items, {"enum": rule.enum}) if rule.items is not None else None
        keywords = {
            "type": "array",
            "examples": _examples(rule.default),
            "uniqueItems": rule.unique,
            "default": rule.default,
        }
        if rule.length is not None:
            keywords["maxItems"] = rule.length
            keywords["minItems"] = rule.length
        else:
            keywords["maxItems"] = rule.max
            keywords["minItems"] = rule.min
        return Fragment(keywords=keywords, items=items if items is not None else Fragment())

    def _map_boolean(self, rule: BooleanRule, siblings=None) -> Fragment:
        return Fragment(keywords={
            "type": "boolean",
            "default": rule.default,
            "examples": _examples(rule.default) or [True, False],
        })

    def _map_currency(self, rule: CurrencyRule, siblings=None) -> Fragment:
        if rule.custom_regex:
            pattern = rule.custom_regex
        else:
            symbol_part = ""
            if rule.currency_symbol:
                symbol_part = "\\" + rule.currency_symbol + ("?" if rule.symbol_optional else "")
            pattern = (
                CURRENCY_PATTERN_TEMPLATE
                .replace("~1", symbol_part)
                .replace("~2", rule.thousand_separator or ",", 1)
                .replace("~3", rule.decimal_separator or ".", 1)
            )
        return Fragment(keywords={
            "type": "string",
            "pattern": pattern,
            "default": rule.default,
            "examples": _examples(rule.default),
            "format": "currency",
        })

    def _map_date(self, rule: DateRule, siblings=None) -> Fragment | None:
        # without conversion a date cannot travel over HTTP
        if not rule.convert:
            return None
        moment = _to_datetime(rule.default)
        return Fragment(keywords={
            "type": "string",
            "default": _iso(rule.default) if isinstance(rule.default, datetime) else rule.default,
            "format": "date-time",
            "examples": [_iso(moment), int(moment.timestamp() * 1000)],
        })

    def _map_email(self, rule: EmailRule, siblings=None) -> Fragment:
        return Fragment(keywords={
            "type": "string",
            "format": "email",
            "default": rule.default,
            "pattern": EMAIL_PRECISE_PATTERN if rule.mode == "precise" else EMAIL_BASIC_PATTERN,
            "maxLength": rule.max,
            "minLength": rule.min,
            "examples": [_first(rule.default, "foo@bar.com")],
        })

    def _map_enum(self, rule: EnumRule, siblings=None) -> Fragment | None:
        return self.convert(StringRule(enum=rule.values))

    def _map_equal(self, rule: EqualRule, siblings=None) -> Fragment | None:
        if rule.field and siblings and rule.field in siblings:
            return self.convert(siblings[rule.field])

        return Fragment(keywords={
            "type": json_type(rule.value) if rule.strict else "string",
            "default": rule.default,
            "examples": _examples(rule.default),
            "enum": [rule.value] if rule.value is not None else None,
        })

    def _map_luhn(self, rule: LuhnRule, siblings=None) -> Fragment:
        return Fragment(keywords={
            "type": "string",
            "default": rule.default,
            "pattern": LUHN_PATTERN,
            "examples": _examples(rule.default),
            "format": "luhn",
        })

    def _map_mac(self, rule: MacRule, siblings=None) -> Fragment:
        return Fragment(keywords={
            "type": "string",
            "default": rule.default,
            "pattern": MAC_PATTERN,
            "examples": _examples(rule.default) or list(MAC_EXAMPLES),
            "format": "mac",
        })

    def _map_multi(self, rule: MultiRule, siblings=None) -> Fragment:
        members = [f for f in (self.convert(r) for r in rule.rules) if f is not None]
        return Fragment(
            keywords={"default": rule.default, "examples": _examples(rule.default)},
            compositions={"oneOf": members},
        )

    def _map_number(self, rule: NumberRule, siblings=None) -> Fragment:
        example = _first(rule.default, rule.enum[0] if rule.enum else None, rule.min, rule.max)
        keywords: dict[str, Any] = {
            "type": "integer" if rule.integer else "number",
            "default": rule.default,
            "examples": _examples(example),
            "enum": rule.enum,
        }
        if rule.positive:
            keywords["minimum"] = 0
        if rule.negative:
            keywords["maximum"] = 0
        if rule.max is not None:
            keywords["maximum"] = rule.max
        if rule.min is not None:
            keywords["minimum"] = rule.min
        if rule.equal is not None:
            keywords["maximum"] = rule.equal
            keywords["minimum"] = rule.equal
        return Fragment(keywords=keywords)

    def _map_object(self, rule: ObjectRule, siblings=None) -> Fragment:
        fields = rule.field_rules
        return Fragment(
            keywords={
                "type": "object",
                "minProperties": rule.min_props,
                "maxProperties": rule.max_props,
                "default": rule.default,
                "examples": _examples(rule.default),
            },
            properties=self.convert_schema(fields) if fields is not None else None,
        )

    def _map_object_id(self, rule: ObjectIdRule, siblings=None) -> Fragment:
        return Fragment(keywords={
            "type": "string",
            "format": "ObjectId",
            "default": rule.default,
            "minLength": len(DEFAULT_OBJECT_ID),
            "maxLength": len(DEFAULT_OBJECT_ID),
            "examples": [_first(rule.default, DEFAULT_OBJECT_ID)],
        })

    def _map_record(self, rule: RecordRule, siblings=None) -> Fragment:
        value = self.convert(rule.value) if rule.value is not None else None
        return Fragment(keywords={"type": "object", "default": rule.default}, additional_properties=value)

    def _map_string(self, rule: StringRule, siblings=None) -> Fragment:
        keywords: dict[str, Any] = {"default": rule.default, "type": "string"}
        if rule.length is not None:
            keywords["maxLength"] = rule.length
            keywords["minLength"] = rule.length
        else:
            keywords["maxLength"] = rule.max
            keywords["minLength"] = rule.min

        class_example = None
        if rule.pattern:
            keywords["pattern"] = rule.pattern
        elif rule.contains:
            keywords["pattern"] = f".*{rule.contains}.*"
            class_example = rule.contains
        else:
            for flag, pattern, fmt, example in STRING_CLASSES:
                if getattr(rule, flag):
                    keywords["pattern"] = pattern
                    keywords["format"] = fmt
                    class_example = example
                    break

        keywords["enum"] = rule.enum
        keywords["examples"] = _examples(
            _first(rule.default, rule.enum[0] if rule.enum else None, class_example)
        )
        return Fragment(keywords=keywords)

    def _map_tuple(self, rule: TupleRule, siblings=None) -> Fragment:
        fragment = self.convert(ArrayRule(default=rule.default, length=2))
        if rule.items:
            members = [f for f in (self.convert(r) for r in rule.items) if f is not None]
            fragment.items = Fragment(compositions={"oneOf": members})
        return fragment

    def _map_url(self, rule: UrlRule, siblings=None) -> Fragment:
        return Fragment(keywords={
            "type": "string",
            "format": "url",
            "default": rule.default,
            "examples": [_first(rule.default, "https://foobar.com")],
        })

    def _map_uuid(self, rule: UuidRule, siblings=None) -> Fragment:
        example = UUID_EXAMPLES.get(rule.version, UUID_EXAMPLES[4])
        return Fragment(keywords={
            "type": "string",
            "format": "uuid",
            "default": rule.default,
            "examples": [_first(rule.default, example)],
        })


def json_type(value: Any) -> str | None:
    """OpenAPI type name of a plain Python value."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return None


def _omit(rule: BaseRule, siblings=None) -> None:
    return None


def _inherit(rule: BaseRule, inherited: Mapping[str, Any]) -> BaseRule:
    updates = {
        k: v
        for k, v in inherited.items()
        if v is not None and k in type(rule).model_fields and k not in rule.model_fields_set
    }
    return rule.model_copy(update=updates) if updates else rule


def _as_string_rule(rule: BaseRule) -> StringRule:
    data = rule.model_dump(by_alias=True, exclude_unset=True)
    data["type"] = "string"
    return StringRule.model_validate(data)


def _first(*values: Any) -> Any:
    return next((v for v in values if v is not None), None)


def _examples(value: Any) -> list[Any] | None:
    return [value] if value is not None else None


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def _iso(moment: datetime) -> str:
    moment = _to_datetime(moment)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
