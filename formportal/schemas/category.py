from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

ROOT_PATH = "/categories"


class CategoryNode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1, max_length=200)
    title: str
    parent_id: str | None = None
    path: str = ""
    icon: str | None = None
    color: str | None = None
    is_page: bool = True
    page_id: str | None = None
    last_updated: datetime | None = None

    @field_validator("parent_id", mode="before")
    @classmethod
    def _blank_parent(cls, v):
        # older records store "" for roots
        return v or None


class CategoryTreeNode(CategoryNode):
    children: list["CategoryTreeNode"] = Field(default_factory=list)


class CategoryCreate(BaseModel):
    id: str = Field(min_length=1, max_length=200)
    title: str = Field(min_length=1, max_length=200)
    parent_id: str | None = None


class CategoryRename(BaseModel):
    title: str = Field(min_length=1, max_length=200)
