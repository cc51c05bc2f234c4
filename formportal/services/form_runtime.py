"""
Runtime side: turns a FormConfiguration into controlled inputs, validates on
submit and hands the values to a submission sink.

There are two resets. A successful submit restores the seeded defaults
so the next, similar report starts pre-filled; the Clear control empties
every field regardless of defaults.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from formportal.core.errors import ConfigNotFound, FormEngineError, FormReadOnlyError, PersistenceError, ValidationError
from formportal.schemas.fields import (
    REPORT_FREQUENCY_FIELD_ID,
    ButtonField,
    DropdownField,
    FieldBase,
    FieldOption,
    NumberField,
    SectionField,
    TextField,
)
from formportal.schemas.form_config import FormConfiguration
from formportal.services.form_config_store import FormConfigStore

logger = logging.getLogger(__name__)

SubmitSink = Callable[[dict[str, Any], str, str | None], Awaitable[None]]
OfficeProvider = Callable[[], Awaitable[list[str]]]

CONTROLS = ["submit", "clear"]


class RuntimeState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    VALIDATING = "validating"
    SUBMITTING = "submitting"


@dataclass
class OfficeOptionsState:
    loading: bool = False
    error: str | None = None
    options: list[FieldOption] | None = None


class RenderedField(BaseModel):
    id: str
    kind: str
    label: str
    placeholder: str | None = None
    required: bool = False
    value: Any = None
    disabled: bool = False
    options: list[FieldOption] = []
    min: float | None = None
    max: float | None = None
    error: str | None = None
    loading: bool = False


def frequency_field(config: FormConfiguration) -> TextField:
    return TextField(
        id=REPORT_FREQUENCY_FIELD_ID,
        label="Report Frequency",
        placeholder="Report frequency for this form",
        default_value=config.scope.selected_frequency.value,
        read_only=True,
    )


def runtime_fields(config: FormConfiguration) -> list[FieldBase]:
    """Config fields, with the read-only frequency field in front when needed."""
    fields = list(config.fields)
    if config.scope.selected_frequency is not None and config.field_by_id(REPORT_FREQUENCY_FIELD_ID) is None:
        fields.insert(0, frequency_field(config))
    return fields


class FormRuntime:
    def __init__(
        self,
        config: FormConfiguration,
        *,
        user_id: str | None = None,
        submit: SubmitSink | None = None,
        office_options: OfficeProvider | None = None,
        read_only: bool = False,
    ):
        self.state = RuntimeState.LOADING
        self.config = config
        self.category_id = config.id
        self.user_id = user_id
        self.read_only = read_only
        self._sink = submit
        self._office_provider = office_options

        self.fields = runtime_fields(config)
        self.defaults = self._seeded_values()
        self.values: dict[str, Any] = self._copy(self.defaults)
        self.errors: dict[str, str] = {}
        self.submitting = False
        self.submit_error: str | None = None
        self.office_state: dict[str, OfficeOptionsState] = {
            f.id: OfficeOptionsState() for f in self.fields if isinstance(f, DropdownField) and f.is_office_name
        }
        self.state = RuntimeState.READY

    @classmethod
    async def open(cls, category_id: str, configs: FormConfigStore, **kwargs) -> "FormRuntime":
        config = await configs.load(category_id)
        if config is None:
            raise ConfigNotFound(category_id)
        return cls(config, **kwargs)

    # ---------- value maps ----------

    @property
    def value_fields(self) -> list[FieldBase]:
        return [f for f in self.fields if not f.structural]

    def _field(self, field_id: str) -> FieldBase:
        for f in self.fields:
            if f.id == field_id:
                return f
        raise ValidationError(f"Unknown field: {field_id}")

    def _seeded_values(self) -> dict[str, Any]:
        return {f.id: f.seed_value() for f in self.value_fields}

    def empty_values(self) -> dict[str, Any]:
        return {f.id: f.empty_value() for f in self.value_fields}

    @staticmethod
    def _copy(values: dict[str, Any]) -> dict[str, Any]:
        return {k: list(v) if isinstance(v, list) else v for k, v in values.items()}

    @property
    def controls(self) -> list[str]:
        return [] if self.read_only else list(CONTROLS)

    def _check_writable(self) -> None:
        if self.read_only:
            raise FormReadOnlyError("This form is read-only.")

    # ---------- interaction ----------

    def change(self, field_id: str, value: Any) -> Any:
        self._check_writable()
        f = self._field(field_id)
        if f.structural:
            raise ValidationError(f"Field '{field_id}' does not hold a value.")
        if f.read_only:
            raise FormReadOnlyError(f"Field '{f.label}' is read-only.")

        new_value = f.apply_change(self.values.get(field_id), value)
        self.values[field_id] = new_value
        self.errors.pop(field_id, None)
        return new_value

    def fill(self, values: dict[str, Any]) -> None:
        """
        Set several values at once, e.g. from a posted form. Read-only and
        unknown ids are ignored. A value of the wrong shape for its kind fails
        the whole fill and nothing is stored.
        """
        self._check_writable()
        targets = [f for f in self.value_fields if f.id in values and not f.read_only]
        bad = {f.id: f"{f.label or f.id} has an invalid value." for f in targets if not f.accepts_value(values[f.id])}
        if bad:
            raise ValidationError("Some values do not match their field type.", bad)

        for f in targets:
            value = values[f.id]
            if value is None:
                value = f.empty_value()
            self.values[f.id] = list(value) if isinstance(value, list) else value
            self.errors.pop(f.id, None)

    async def load_office_options(self, field_id: str) -> OfficeOptionsState:
        """Initial load and retry for an Office Name dropdown."""
        state = self.office_state.get(field_id)
        if state is None:
            raise ValidationError(f"Field '{field_id}' is not an Office Name dropdown.")
        if state.loading:
            return state

        state.loading = True
        state.error = None
        try:
            if self._office_provider is None:
                raise FormEngineError("No office list available for this user.")
            names = await self._office_provider()
            state.options = [FieldOption(label=n, value=n) for n in names]
        except FormEngineError as exc:
            logger.warning("office options failed for %s: %s", field_id, exc.message,
                           extra={"category_id": self.category_id})
            state.error = exc.message or "Failed to load office names"
        finally:
            state.loading = False
        return state

    # ---------- validation / submit ----------

    def validate(self) -> dict[str, str]:
        self.state = RuntimeState.VALIDATING
        errors: dict[str, str] = {}
        for f in self.value_fields:
            if f.required and f.is_empty(self.values.get(f.id)):
                errors[f.id] = f"{f.label} is required."
        self.errors = errors
        self.state = RuntimeState.READY
        return errors

    async def submit(self) -> bool:
        """
        True when the sink accepted the values. False when a submission is
        already in flight or validation failed (see `errors`). A sink failure
        is re-raised as PersistenceError with the values left as they were.
        """
        self._check_writable()
        if self.submitting:
            return False
        if self.validate():
            return False
        if self._sink is None:
            raise PersistenceError("No submission handler configured.")

        self.submitting = True
        self.submit_error = None
        self.state = RuntimeState.SUBMITTING
        try:
            await self._sink(self._copy(self.values), self.category_id, self.user_id)
        except Exception as exc:
            message = exc.message if isinstance(exc, FormEngineError) else str(exc)
            self.submit_error = message or "Submission failed"
            logger.error("submit failed for %s: %s", self.category_id, self.submit_error,
                         extra={"category_id": self.category_id})
            if isinstance(exc, PersistenceError):
                raise
            raise PersistenceError(self.submit_error) from exc
        finally:
            self.submitting = False
            self.state = RuntimeState.READY

        self.values = self._copy(self.defaults)
        self.errors = {}
        logger.info("form submitted: %s", self.category_id, extra={"category_id": self.category_id})
        return True

    def clear(self) -> None:
        self._check_writable()
        self.values = self.empty_values()
        self.errors = {}
        self.submit_error = None

    # ---------- view model ----------

    def _render(self, f: FieldBase) -> RenderedField:
        disabled = self.read_only or f.read_only or self.submitting
        rendered = RenderedField(
            id=f.id,
            kind=f.kind,
            label=f.display_label,
            placeholder=f.placeholder,
            required=f.required,
            value=self.values.get(f.id),
            disabled=disabled,
            options=list(getattr(f, "options", [])),
            error=self.errors.get(f.id),
        )
        if isinstance(f, NumberField):
            rendered.min, rendered.max = f.min, f.max
        if isinstance(f, (SectionField, ButtonField)):
            rendered.value = None
        office = self.office_state.get(f.id)
        if office is not None:
            rendered.options = list(office.options or [])
            rendered.loading = office.loading
            rendered.disabled = disabled or office.loading
            rendered.error = rendered.error or office.error
        return rendered

    def render(self) -> list[RenderedField]:
        return [self._render(f) for f in self.fields]
