from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from formportal.api.deps import get_config_store, get_hierarchy_service, get_submission_sink
from formportal.core.errors import ValidationError
from formportal.core.security import Principal, get_current_user, require_admin
from formportal.services.form_config_store import FormConfigStore
from formportal.services.form_runtime import FormRuntime, RenderedField
from formportal.services.location_hierarchy import LocationHierarchyService
from formportal.services.submissions import StoreSubmissionSink, convert_submission_data

router = APIRouter(prefix="/forms/{category_id}", tags=["submissions"])


class RenderedFormOut(BaseModel):
    id: str
    title: str
    read_only: bool
    controls: list[str]
    fields: list[RenderedField]


class SubmissionIn(BaseModel):
    values: dict[str, Any] = Field(default_factory=dict)


async def _open_runtime(
    category_id: str,
    configs: FormConfigStore,
    hierarchy: LocationHierarchyService,
    sink: StoreSubmissionSink,
    user: Principal,
    read_only: bool = False,
) -> FormRuntime:
    async def _offices() -> list[str]:
        return await hierarchy.accessible_office_names(user.office_name)

    runtime = await FormRuntime.open(
        category_id,
        configs,
        user_id=user.user_id,
        submit=sink,
        office_options=_offices,
        read_only=read_only,
    )
    for field_id in runtime.office_state:
        await runtime.load_office_options(field_id)
    return runtime


@router.get("/render", response_model=RenderedFormOut)
async def render_form(
    category_id: str,
    read_only: bool = Query(default=False),
    configs: FormConfigStore = Depends(get_config_store),
    hierarchy: LocationHierarchyService = Depends(get_hierarchy_service),
    sink: StoreSubmissionSink = Depends(get_submission_sink),
    current_user: Principal = Depends(get_current_user),
):
    runtime = await _open_runtime(category_id, configs, hierarchy, sink, current_user, read_only)
    return RenderedFormOut(
        id=runtime.category_id,
        title=runtime.config.title,
        read_only=runtime.read_only,
        controls=runtime.controls,
        fields=runtime.render(),
    )


@router.post("/submissions", status_code=status.HTTP_201_CREATED)
async def submit_form(
    category_id: str,
    payload: SubmissionIn,
    configs: FormConfigStore = Depends(get_config_store),
    hierarchy: LocationHierarchyService = Depends(get_hierarchy_service),
    sink: StoreSubmissionSink = Depends(get_submission_sink),
    current_user: Principal = Depends(get_current_user),
):
    runtime = await _open_runtime(category_id, configs, hierarchy, sink, current_user)
    runtime.fill(payload.values)
    submitted_values = dict(runtime.values)
    if not await runtime.submit():
        raise ValidationError("Please fill in all required fields.", runtime.errors)
    return {"status": "submitted", "form_identifier": category_id, "values": submitted_values}


@router.get("/submissions")
async def list_submissions(
    category_id: str,
    configs: FormConfigStore = Depends(get_config_store),
    sink: StoreSubmissionSink = Depends(get_submission_sink),
    _: Principal = Depends(require_admin),
):
    config = await configs.load(category_id)
    fields = config.fields if config else []
    docs = await sink.list_for_form(category_id)
    return [
        {**d, "data_by_label": convert_submission_data(d.get("submission_data") or {}, fields)}
        for d in docs
    ]
