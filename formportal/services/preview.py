"""Static HTML preview of a form for the builder. No state, no validation."""
from __future__ import annotations

from html import escape

from formportal.schemas.fields import (
    ButtonField,
    CheckboxField,
    CheckboxGroupField,
    DropdownField,
    FieldBase,
    RadioField,
    SectionField,
    SwitchField,
)

_INPUT_TYPES = {"text": "text", "number": "number", "date": "date", "file": "file"}


def _label(field: FieldBase) -> str:
    return escape(field.label) + (" *" if field.required else "")


def _required(field: FieldBase) -> str:
    return " required" if field.required else ""


def render_field(field: FieldBase) -> str:
    fid = escape(field.id, quote=True)

    if isinstance(field, SectionField):
        return (
            '<div class="card mt-3 mb-3">'
            f'<div class="card-header">{escape(field.section_title or "Section")}</div>'
            '<div class="card-body"><p>Fields for this section would appear here in the actual form.</p></div>'
            "</div>"
        )

    if isinstance(field, ButtonField):
        return f'<button type="button" class="btn btn-primary mt-3">{escape(field.button_text or "Button")}</button>'

    if isinstance(field, (CheckboxField, SwitchField)):
        extra = " form-switch" if isinstance(field, SwitchField) else ""
        return (
            f'<div class="form-check{extra} mb-3">'
            f'<input type="checkbox" class="form-check-input" id="{fid}"{_required(field)} />'
            f'<label class="form-check-label" for="{fid}">{_label(field)}</label>'
            "</div>"
        )

    if isinstance(field, DropdownField):
        options = "".join(
            f'<option value="{escape(o.value, quote=True)}">{escape(o.label)}</option>' for o in field.options
        )
        return (
            '<div class="form-group mb-3">'
            f'<label class="form-label">{_label(field)}</label>'
            f'<select class="form-control"{_required(field)}>'
            f'<option value="">Select {escape(field.label)}</option>{options}'
            "</select></div>"
        )

    if isinstance(field, (RadioField, CheckboxGroupField)):
        input_type = "radio" if isinstance(field, RadioField) else "checkbox"
        choices = "".join(
            '<div class="form-check">'
            f'<input class="form-check-input" type="{input_type}" name="{fid}" id="{fid}-{i}" '
            f'value="{escape(o.value, quote=True)}"{_required(field) if input_type == "radio" else ""}>'
            f'<label class="form-check-label" for="{fid}-{i}">{escape(o.label)}</label>'
            "</div>"
            for i, o in enumerate(field.options)
        )
        return f'<div class="form-group mb-3"><label class="form-label">{_label(field)}</label>{choices}</div>'

    placeholder = escape(field.placeholder or "", quote=True)
    if field.kind == "textarea":
        control = f'<textarea class="form-control" placeholder="{placeholder}"{_required(field)}></textarea>'
    else:
        control = (
            f'<input type="{_INPUT_TYPES.get(field.kind, "text")}" class="form-control" '
            f'placeholder="{placeholder}"{_required(field)} />'
        )
    return f'<div class="form-group mb-3"><label class="form-label">{_label(field)}</label>{control}</div>'


def render_preview(title: str, fields: list[FieldBase]) -> str:
    body = "".join(render_field(f) for f in fields)
    return f"<h1>{escape(title or '')}</h1><form>{body}</form>"
