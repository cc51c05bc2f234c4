from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LocationRecord(BaseModel):
    """One row of the external office table. Any column may be blank."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    office_id: str | None = Field(default=None, alias="Facility ID")
    region: str | None = Field(default=None, alias="Region")
    division: str | None = Field(default=None, alias="Division")
    office_name: str | None = Field(default=None, alias="Office name")
    reporting_office_name: str | None = Field(default=None, alias="Reporting Office Name")

    @field_validator("office_id", "region", "division", "office_name", "reporting_office_name", mode="before")
    @classmethod
    def _scalar_to_str(cls, v):
        # numeric ids and names occur in the external table
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class Region(BaseModel):
    id: str
    name: str


class Division(BaseModel):
    id: str
    name: str
    region: str


class Office(BaseModel):
    id: str
    name: str
    region: str
    division: str


class LocationHierarchy(BaseModel):
    regions: list[Region] = Field(default_factory=list)
    divisions: list[Division] = Field(default_factory=list)
    offices: list[Office] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.regions or self.divisions or self.offices)


class HierarchyOut(LocationHierarchy):
    error: str | None = None


class CascadeOut(BaseModel):
    divisions: list[Division]
    offices: list[Office]


class OfficeAccessOut(BaseModel):
    office_name: str | None
    is_division_user: bool
    access_level: str
    report_type: str
    accessible_offices: list[str]
