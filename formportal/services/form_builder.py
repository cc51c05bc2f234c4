"""
Authoring side: pick a category, manage the tree, edit a page's fields and
scope, save.

    builder = FormBuilder(categories, configs, hierarchy)
    await builder.refresh_categories()
    await builder.select_category("daily-sales")
    await builder.configure_page()
    builder.add_field("number")
    builder.set_frequency("daily")
    await builder.save()

Async loads are tagged with a request token per target; a response that comes
back after the selection moved on is dropped.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from formportal.core.errors import FormEngineError, ValidationError
from formportal.core.request_tokens import RequestTokens
from formportal.core.slug import normalize_id_input
from formportal.schemas.category import CategoryNode
from formportal.schemas.fields import FieldBase, TextField, convert_field_kind, parse_field
from formportal.schemas.form_config import FormConfiguration, FormScope, ReportFrequency
from formportal.services.category_tree import CategoryTreeService, is_leaf_node, is_root_node
from formportal.services.form_config_store import FREQUENCY_REQUIRED, FormConfigStore, delete_category_subtree
from formportal.services.location_hierarchy import LocationHierarchyService, ScopeSelection
from formportal.services.preview import render_preview

logger = logging.getLogger(__name__)


class BuilderState(str, Enum):
    NO_SELECTION = "no_selection"
    CATEGORY_SELECTED = "category_selected"
    EDITING_SCOPE = "editing_scope"
    EDITING_FIELDS = "editing_fields"
    SAVED = "saved"


class ActionType(str, Enum):
    CREATE_ROOT = "create_root"
    CREATE_NESTED = "create_nested"
    CONFIGURE = "configure"


class FormBuilder:
    def __init__(
        self,
        categories: CategoryTreeService,
        configs: FormConfigStore,
        hierarchy: LocationHierarchyService,
    ):
        self.categories = categories
        self.configs = configs
        self.hierarchy = hierarchy
        self.tokens = RequestTokens()

        self.state = BuilderState.NO_SELECTION
        self.nodes: list[CategoryNode] = []
        self.selected_id: str | None = None
        self.action_type: ActionType | None = None

        self.config: FormConfiguration | None = None
        self.fields: list[FieldBase] = []
        self.scope = ScopeSelection()
        self.frequency: ReportFrequency | None = None

        self.draft_id = ""
        self.draft_title = ""
        self._checked_draft_id: str | None = None

        self.suggestions: list[FieldBase] = []
        self.error: str | None = None
        self._field_seq = 0

    # ---------- category tree ----------

    async def refresh_categories(self) -> list[CategoryNode]:
        self.nodes = await self.categories.list()
        return self.nodes

    @property
    def selected(self) -> CategoryNode | None:
        for n in self.nodes:
            if n.id == self.selected_id:
                return n
        return None

    @property
    def can_configure(self) -> bool:
        if self.selected is None:
            return False
        return is_leaf_node(self.selected_id, self.nodes) and not is_root_node(self.selected_id, self.nodes)

    async def select_category(self, category_id: str | None) -> None:
        if category_id is not None and not any(n.id == category_id for n in self.nodes):
            await self.refresh_categories()
            if not any(n.id == category_id for n in self.nodes):
                raise ValidationError(f"Unknown category: {category_id}")

        self.action_type = None
        self.error = None
        self.selected_id = category_id
        # any config load still in flight belongs to the old selection
        self.tokens.cancel("config")
        self.tokens.cancel("suggestions")

        if category_id is None:
            self.state = BuilderState.NO_SELECTION
            self._clear_config()
            return

        self.state = BuilderState.CATEGORY_SELECTED
        if not self.can_configure:
            self._clear_config()

    def _clear_config(self) -> None:
        self.config = None
        self.fields = []
        self.scope.restore([], [], [])
        self.frequency = None

    # ---------- create flow ----------

    def begin_create(self, nested: bool = False) -> None:
        if nested and self.selected_id is None:
            raise ValidationError("Select a parent category first.")
        self.action_type = ActionType.CREATE_NESTED if nested else ActionType.CREATE_ROOT
        self.draft_id = ""
        self.draft_title = ""
        self._checked_draft_id = None
        self.error = None

    def set_draft_id(self, raw: str) -> str:
        self.draft_id = normalize_id_input(raw)
        self._checked_draft_id = None
        return self.draft_id

    def set_draft_title(self, title: str) -> None:
        self.draft_title = title

    async def check_draft(self) -> bool:
        draft_id = self.draft_id.strip("-")
        if not draft_id or not self.draft_title.strip():
            self.error = "Report ID and Title are required."
            return False
        if await self.categories.exists(draft_id):
            self.error = f"This Report ID already exists: '{draft_id}'. Please use a unique ID."
            return False
        self.draft_id = draft_id
        self._checked_draft_id = draft_id
        self.error = None
        return True

    async def confirm_create(self) -> CategoryNode:
        if self.action_type not in (ActionType.CREATE_ROOT, ActionType.CREATE_NESTED):
            raise ValidationError("No create action in progress.")
        if self._checked_draft_id is None or self._checked_draft_id != self.draft_id:
            raise ValidationError("Check the Report ID before creating it.")

        parent_id = self.selected_id if self.action_type == ActionType.CREATE_NESTED else None
        node = await self.categories.create(self.draft_id, self.draft_title, parent_id)
        await self.refresh_categories()
        self.action_type = None
        self._checked_draft_id = None
        return node

    async def rename_selected(self, title: str) -> CategoryNode:
        if self.selected_id is None:
            raise ValidationError("No category selected.")
        node = await self.categories.rename(self.selected_id, title)
        await self.refresh_categories()
        return node

    async def delete_selected(self) -> list[str]:
        """
        Tree batch first; mirror copies are cleaned up afterwards and a mirror
        failure only lands in `error`.
        """
        if self.selected_id is None:
            raise ValidationError("No category selected.")

        ids, failed = await delete_category_subtree(self.categories, self.configs, self.selected_id)
        await self.refresh_categories()
        await self.select_category(None)
        if failed:
            self.error = f"Deleted, but mirror cleanup failed for: {', '.join(failed)}"
        return ids

    # ---------- configuration ----------

    async def configure_page(self) -> FormConfiguration | None:
        if not self.can_configure:
            raise ValidationError("Only leaf categories under a main category can be configured.")

        category_id = self.selected_id
        self.action_type = ActionType.CONFIGURE
        token = self.tokens.issue("config")

        loaded = await self.configs.load(category_id)
        # pruning needs the hierarchy; a failed fetch leaves it empty and the scope untouched
        hierarchy = await self.hierarchy.current()
        if not self.tokens.is_current("config", token):
            logger.debug("dropping stale config response for %s", category_id)
            return None

        node = self.selected
        config = loaded or FormConfiguration(id=category_id, title=node.title if node else category_id)
        self.config = config
        self.fields = list(config.fields)
        self.frequency = config.scope.selected_frequency
        self.scope.restore(
            config.scope.selected_regions,
            config.scope.selected_divisions,
            config.scope.selected_offices,
        )
        self.scope.set_hierarchy(hierarchy)
        self._field_seq = len(self.fields)
        self.state = BuilderState.EDITING_FIELDS
        return config

    async def refresh_hierarchy(self) -> str | None:
        h = await self.hierarchy.refresh()
        self.scope.set_hierarchy(h)
        return self.hierarchy.last_error

    # ---------- field suggestions ----------

    async def load_field_suggestions(self, source_id: str) -> list[FieldBase]:
        token = self.tokens.issue("suggestions")
        source = await self.configs.load(source_id)
        if not self.tokens.is_current("suggestions", token):
            return self.suggestions
        self.suggestions = list(source.fields) if source else []
        return self.suggestions

    def add_field_from_suggestion(self, field: FieldBase | dict) -> FieldBase:
        field = parse_field(field)
        if any(f.id == field.id for f in self.fields):
            raise ValidationError(f"Field '{field.id}' is already on this form.")
        self.fields.append(field.model_copy(deep=True))
        self._touch_fields()
        return field

    # ---------- field editing ----------

    def _next_field_id(self) -> str:
        taken = {f.id for f in self.fields}
        while True:
            self._field_seq += 1
            candidate = f"field_{self._field_seq}"
            if candidate not in taken:
                return candidate

    def _touch_fields(self) -> None:
        if self.config is None:
            raise ValidationError("Configure a page before editing fields.")
        self.state = BuilderState.EDITING_FIELDS

    def _field_at(self, index: int) -> FieldBase:
        if not 0 <= index < len(self.fields):
            raise ValidationError(f"No field at position {index}.")
        return self.fields[index]

    def add_field(self, kind: str = "text") -> FieldBase:
        self._touch_fields()
        field = TextField(id=self._next_field_id(), label="New Field")
        if kind != "text":
            try:
                field = convert_field_kind(field, kind)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc
        self.fields.append(field)
        return field

    def update_field(self, index: int, **changes: Any) -> FieldBase:
        self._touch_fields()
        current = self._field_at(index)
        new_id = changes.get("id")
        if new_id is not None and any(f.id == new_id for i, f in enumerate(self.fields) if i != index):
            raise ValidationError(f"Duplicate field id: {new_id}")

        try:
            if "kind" in changes:
                current = convert_field_kind(current, changes.pop("kind"))
            data = current.model_dump()
            data.update(changes)
            updated = parse_field(data)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        self.fields[index] = updated
        return updated

    def change_field_kind(self, index: int, kind: str) -> FieldBase:
        return self.update_field(index, kind=kind)

    def remove_field(self, index: int) -> FieldBase:
        self._touch_fields()
        self._field_at(index)
        return self.fields.pop(index)

    def move_field(self, index: int, new_index: int) -> None:
        self._touch_fields()
        field = self._field_at(index)
        new_index = max(0, min(new_index, len(self.fields) - 1))
        self.fields.pop(index)
        self.fields.insert(new_index, field)

    # ---------- scope ----------

    def _touch_scope(self) -> None:
        if self.config is None:
            raise ValidationError("Configure a page before editing its scope.")
        self.state = BuilderState.EDITING_SCOPE

    def select_regions(self, regions: list[str]) -> None:
        self._touch_scope()
        self.scope.select_regions(regions)

    def select_divisions(self, divisions: list[str]) -> None:
        self._touch_scope()
        self.scope.select_divisions(divisions)

    def select_offices(self, offices: list[str]) -> None:
        self._touch_scope()
        self.scope.select_offices(offices)

    def set_frequency(self, frequency: str | ReportFrequency | None) -> None:
        self._touch_scope()
        if frequency in (None, ""):
            self.frequency = None
            return
        try:
            self.frequency = ReportFrequency(frequency)
        except ValueError as exc:
            raise ValidationError(f"Unknown report frequency: {frequency}") from exc

    # ---------- save / preview ----------

    def build_config(self) -> FormConfiguration:
        if self.config is None:
            raise ValidationError("Configure a page before saving.")
        node = self.selected
        return FormConfiguration(
            id=self.config.id,
            title=node.title if node else self.config.title,
            fields=[f.model_dump() for f in self.fields],
            last_updated=self.config.last_updated,
            scope=FormScope(
                selected_regions=self.scope.regions,
                selected_divisions=self.scope.divisions,
                selected_offices=self.scope.offices,
                selected_frequency=self.frequency,
            ),
        )

    async def save(self) -> FormConfiguration:
        if self.frequency is None:
            self.error = FREQUENCY_REQUIRED
            raise ValidationError(FREQUENCY_REQUIRED, {"selected_frequency": FREQUENCY_REQUIRED})

        try:
            saved = await self.configs.save(self.build_config())
        except FormEngineError as exc:
            self.error = exc.message
            raise

        self.config = saved
        self.error = None
        self.state = BuilderState.SAVED
        return saved

    def preview(self) -> str:
        title = self.config.title if self.config else (self.selected.title if self.selected else "")
        return render_preview(title, self.fields)
