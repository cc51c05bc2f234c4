"""
Field definitions: one pydantic class per field kind.

Each kind owns its empty value, its emptiness test and the shape its default
must have, so seeding, clearing and required-checks never branch on a string
tag. A default whose shape does not match the kind is replaced by the kind's
empty value instead of being rejected.
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Any, ClassVar, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

LEGACY_KIND_ALIASES = {"checkbox-group": "checkboxGroup"}

OFFICE_NAME_LABEL = "Office Name"
REPORT_FREQUENCY_FIELD_ID = "reportFrequency"


class FieldOption(BaseModel):
    label: str
    value: str


class FieldBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1, max_length=200)
    label: str = ""
    placeholder: str | None = None
    required: bool = False
    default_value: Any = None
    read_only: bool = False

    # section/button carry no value
    structural: ClassVar[bool] = False
    has_placeholder: ClassVar[bool] = True
    has_options: ClassVar[bool] = False

    def empty_value(self) -> Any:
        return ""

    def is_empty(self, value: Any) -> bool:
        return value is None or value == ""

    def accepts_default(self, value: Any) -> bool:
        return isinstance(value, (str, int, float)) and not isinstance(value, bool)

    def accepts_value(self, value: Any) -> bool:
        """Shape check for a value posted from outside; None means empty."""
        return value is None or self.accepts_default(value)

    def seed_value(self) -> Any:
        if self.default_value is None:
            return self.empty_value()
        return self.default_value

    def apply_change(self, current: Any, value: Any) -> Any:
        """New value after a user interaction."""
        return value

    @model_validator(mode="after")
    def _coerce_default(self):
        if self.default_value is not None and not self.accepts_default(self.default_value):
            self.default_value = self.empty_value()
        return self

    @property
    def display_label(self) -> str:
        return self.label


class TextField(FieldBase):
    kind: Literal["text"] = "text"


class TextareaField(FieldBase):
    kind: Literal["textarea"] = "textarea"


class NumberField(FieldBase):
    kind: Literal["number"] = "number"
    min: float | None = None
    max: float | None = None

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min must be <= max")
        return self

    def accepts_value(self, value: Any) -> bool:
        if isinstance(value, str) and value.strip():
            try:
                float(value)
            except ValueError:
                return False
            return True
        return super().accepts_value(value)


class DateField(FieldBase):
    kind: Literal["date"] = "date"

    def accepts_default(self, value: Any) -> bool:
        if isinstance(value, date):
            return True
        if not isinstance(value, str):
            return False
        if value == "":
            return True
        try:
            date.fromisoformat(value)
        except ValueError:
            return False
        return True

    @field_validator("default_value", mode="before")
    @classmethod
    def _date_to_iso(cls, v):
        return v.isoformat() if isinstance(v, date) else v


class OptionsMixin(BaseModel):
    options: list[FieldOption] = Field(default_factory=list)

    has_options: ClassVar[bool] = True

    @field_validator("options", mode="before")
    @classmethod
    def _plain_strings(cls, v):
        # suggestions may carry bare strings
        if isinstance(v, list):
            return [{"label": o, "value": o} if isinstance(o, str) else o for o in v]
        return v

    @field_validator("options")
    @classmethod
    def _unique_values(cls, v: list[FieldOption]):
        seen: set[str] = set()
        for opt in v:
            if opt.value in seen:
                raise ValueError(f"Duplicate option value: {opt.value}")
            seen.add(opt.value)
        return v

    def option_values(self) -> list[str]:
        return [o.value for o in self.options]


class DropdownField(OptionsMixin, FieldBase):
    kind: Literal["dropdown"] = "dropdown"

    @property
    def is_office_name(self) -> bool:
        return self.label.strip() == OFFICE_NAME_LABEL


class RadioField(OptionsMixin, FieldBase):
    kind: Literal["radio"] = "radio"
    has_placeholder: ClassVar[bool] = False


class CheckboxGroupField(OptionsMixin, FieldBase):
    kind: Literal["checkboxGroup"] = "checkboxGroup"
    has_placeholder: ClassVar[bool] = False

    def empty_value(self) -> Any:
        return []

    def is_empty(self, value: Any) -> bool:
        return not isinstance(value, list) or len(value) == 0

    def accepts_default(self, value: Any) -> bool:
        return isinstance(value, list) and all(isinstance(v, str) for v in value)

    def seed_value(self) -> Any:
        return list(super().seed_value())

    def apply_change(self, current: Any, value: Any) -> Any:
        current = list(current) if isinstance(current, list) else []
        if value in current:
            return [v for v in current if v != value]
        return current + [value]


class _BooleanField(FieldBase):
    has_placeholder: ClassVar[bool] = False

    def empty_value(self) -> Any:
        return False

    def is_empty(self, value: Any) -> bool:
        return value is False or value is None

    def accepts_default(self, value: Any) -> bool:
        return isinstance(value, bool)

    def apply_change(self, current: Any, value: Any) -> Any:
        if isinstance(value, bool):
            return value
        return not bool(current)


class CheckboxField(_BooleanField):
    kind: Literal["checkbox"] = "checkbox"


class SwitchField(_BooleanField):
    kind: Literal["switch"] = "switch"


class FileField(FieldBase):
    kind: Literal["file"] = "file"
    has_placeholder: ClassVar[bool] = False


class SectionField(FieldBase):
    kind: Literal["section"] = "section"
    section_title: str | None = None
    columns: int | None = Field(default=None, ge=1, le=12)

    structural: ClassVar[bool] = True
    has_placeholder: ClassVar[bool] = False

    @property
    def display_label(self) -> str:
        return self.section_title or self.label or "Section"


class ButtonField(FieldBase):
    kind: Literal["button"] = "button"
    button_text: str | None = None
    button_type: str | None = None
    on_click_action: str | None = None

    structural: ClassVar[bool] = True
    has_placeholder: ClassVar[bool] = False

    @property
    def display_label(self) -> str:
        return self.button_text or self.label or "Button"


FieldDefinition = Annotated[
    Union[
        TextField,
        TextareaField,
        NumberField,
        DateField,
        DropdownField,
        RadioField,
        CheckboxField,
        CheckboxGroupField,
        SwitchField,
        FileField,
        SectionField,
        ButtonField,
    ],
    Field(discriminator="kind"),
]

FIELD_CLASSES: dict[str, type[FieldBase]] = {
    cls.model_fields["kind"].default: cls for cls in get_args(get_args(FieldDefinition)[0])
}

FIELD_KINDS: tuple[str, ...] = tuple(FIELD_CLASSES)

_field_adapter = TypeAdapter(FieldDefinition)


def normalize_field_payload(raw: Any) -> Any:
    if isinstance(raw, dict):
        kind = raw.get("kind", raw.get("type"))
        kind = LEGACY_KIND_ALIASES.get(kind, kind)
        raw = {k: v for k, v in raw.items() if k != "type"}
        if kind is not None:
            raw["kind"] = kind
    return raw


def parse_field(raw: Any) -> FieldBase:
    """dict (possibly using the legacy `type` key / `checkbox-group` tag) -> field"""
    if isinstance(raw, FieldBase):
        return raw
    return _field_adapter.validate_python(normalize_field_payload(raw))


def convert_field_kind(field: FieldBase, kind: str) -> FieldBase:
    """
    Rebuild `field` as another kind. Options and placeholder are dropped when the
    new kind has no use for them; the default is re-coerced by the new kind.
    """
    kind = LEGACY_KIND_ALIASES.get(kind, kind)
    if kind not in FIELD_CLASSES:
        raise ValueError(f"Unknown field kind: {kind}")
    data = field.model_dump()
    data["kind"] = kind
    new_cls = FIELD_CLASSES[kind]
    if not new_cls.has_options:
        data.pop("options", None)
    if not new_cls.has_placeholder:
        data["placeholder"] = None
    if new_cls.structural:
        data["required"] = False
    return parse_field(data)
