from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field, field_validator

from formportal.api.deps import get_category_service, get_config_store
from formportal.core.errors import ConfigNotFound, ValidationError
from formportal.core.security import Principal, get_current_user, require_admin
from formportal.schemas.fields import FieldDefinition, normalize_field_payload
from formportal.schemas.form_config import FormConfigSave, FormConfigSearch, FormConfiguration, ReportFrequency
from formportal.services.category_tree import CategoryTreeService, is_leaf_node, is_root_node
from formportal.services.form_config_store import FormConfigStore
from formportal.services.location_hierarchy import filter_forms_by_office_access
from formportal.services.preview import render_preview

router = APIRouter(prefix="/forms", tags=["forms"])


class PreviewRequest(BaseModel):
    title: str = ""
    fields: list[FieldDefinition] = Field(default_factory=list)

    @field_validator("fields", mode="before")
    @classmethod
    def _legacy_fields(cls, v):
        return [normalize_field_payload(f) if isinstance(f, dict) else f for f in (v or [])]


@router.get("/search", response_model=list[FormConfiguration])
async def search_forms(
    title: str | None = Query(default=None),
    region: str | None = Query(default=None),
    frequency: ReportFrequency | None = Query(default=None),
    configs: FormConfigStore = Depends(get_config_store),
    _: Principal = Depends(require_admin),
):
    return await configs.search(FormConfigSearch(title=title, region=region, frequency=frequency))


@router.get("/accessible", response_model=list[FormConfiguration])
async def accessible_forms(
    configs: FormConfigStore = Depends(get_config_store),
    current_user: Principal = Depends(get_current_user),
):
    """Forms targeting the current user's office, plus forms with no office targets."""
    return filter_forms_by_office_access(await configs.list_all(), current_user.office_name)


@router.post("/preview", response_class=HTMLResponse)
async def preview_draft(payload: PreviewRequest, _: Principal = Depends(require_admin)):
    return render_preview(payload.title, payload.fields)


@router.get("/{category_id}", response_model=FormConfiguration)
async def get_form(
    category_id: str,
    configs: FormConfigStore = Depends(get_config_store),
    _: Principal = Depends(get_current_user),
):
    config = await configs.load(category_id)
    if config is None:
        raise ConfigNotFound(category_id)
    return config


@router.put("/{category_id}", response_model=FormConfiguration)
async def save_form(
    category_id: str,
    payload: FormConfigSave,
    categories: CategoryTreeService = Depends(get_category_service),
    configs: FormConfigStore = Depends(get_config_store),
    _: Principal = Depends(require_admin),
):
    nodes = await categories.list()
    node = next((n for n in nodes if n.id == category_id), None)
    if node is None:
        raise ValidationError(f"Category '{category_id}' does not exist")
    if not is_leaf_node(category_id, nodes) or is_root_node(category_id, nodes):
        raise ValidationError("Only leaf categories under a main category can be configured.")

    try:
        config = FormConfiguration(
            id=category_id,
            title=node.title,
            fields=[f.model_dump() for f in payload.fields],
            scope=payload.scope,
        )
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return await configs.save(config)


@router.get("/{category_id}/preview", response_class=HTMLResponse)
async def preview_form(
    category_id: str,
    configs: FormConfigStore = Depends(get_config_store),
    _: Principal = Depends(require_admin),
):
    config = await configs.load(category_id)
    if config is None:
        raise ConfigNotFound(category_id)
    return render_preview(config.title, config.fields)
