from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from formportal.schemas.fields import FieldBase, FieldDefinition, normalize_field_payload


class ReportFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def label(self) -> str:
        return self.value.capitalize()


def _dedupe(values: list[str]) -> list[str]:
    out: list[str] = []
    for v in values:
        if v and v not in out:
            out.append(v)
    return out


class FormScope(BaseModel):
    """Which regions/divisions/offices a form targets, by entity name."""

    model_config = ConfigDict(extra="ignore")

    selected_regions: list[str] = Field(default_factory=list)
    selected_divisions: list[str] = Field(default_factory=list)
    selected_offices: list[str] = Field(default_factory=list)
    selected_frequency: ReportFrequency | None = None

    # single-value fields written by older builders
    selected_region: str | None = None
    selected_division: str | None = None
    selected_office: str | None = None

    @field_validator("selected_regions", "selected_divisions", "selected_offices", mode="before")
    @classmethod
    def _none_to_list(cls, v):
        return [] if v is None else v

    @field_validator("selected_regions", "selected_divisions", "selected_offices")
    @classmethod
    def _unique(cls, v: list[str]):
        return _dedupe(v)

    @field_validator("selected_frequency", mode="before")
    @classmethod
    def _blank_frequency(cls, v):
        return None if v == "" else v

    @model_validator(mode="after")
    def _promote_legacy(self):
        if not self.selected_regions and self.selected_region:
            self.selected_regions = [self.selected_region]
        if not self.selected_divisions and self.selected_division:
            self.selected_divisions = [self.selected_division]
        if not self.selected_offices and self.selected_office:
            self.selected_offices = [self.selected_office]
        return self

    def matches_region(self, region: str) -> bool:
        return self.selected_region == region or region in self.selected_regions


class FormConfiguration(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    title: str = ""
    fields: list[FieldDefinition] = Field(default_factory=list)
    last_updated: datetime | None = None
    scope: FormScope = Field(default_factory=FormScope)

    @model_validator(mode="before")
    @classmethod
    def _flat_scope(cls, data):
        # mirror rows store scope keys at top level
        if isinstance(data, dict) and "scope" not in data:
            scope_keys = set(FormScope.model_fields)
            scope = {k: data[k] for k in scope_keys if k in data}
            if scope:
                data = {k: v for k, v in data.items() if k not in scope_keys}
                data["scope"] = scope
        return data

    @field_validator("fields", mode="before")
    @classmethod
    def _legacy_fields(cls, v):
        if v is None:
            return []
        return [normalize_field_payload(f) if isinstance(f, dict) else f for f in v]

    @field_validator("fields")
    @classmethod
    def _unique_ids(cls, v: list[FieldBase]):
        seen: set[str] = set()
        for f in v:
            if f.id in seen:
                raise ValueError(f"Duplicate field id: {f.id}")
            seen.add(f.id)
        return v

    def field_by_id(self, field_id: str) -> FieldBase | None:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    def value_fields(self) -> list[FieldBase]:
        return [f for f in self.fields if not f.structural]


class FormConfigSearch(BaseModel):
    title: str | None = None
    region: str | None = None
    frequency: ReportFrequency | None = None


class FormConfigSave(BaseModel):
    """Body of the builder's save call."""

    fields: list[FieldDefinition] = Field(default_factory=list)
    scope: FormScope = Field(default_factory=FormScope)

    @field_validator("fields", mode="before")
    @classmethod
    def _legacy_fields(cls, v):
        return [normalize_field_payload(f) if isinstance(f, dict) else f for f in (v or [])]

