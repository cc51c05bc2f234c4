from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from formportal.core.errors import DuplicateIdError, ValidationError
from formportal.db.document_store import DocumentStore, to_document
from formportal.schemas.category import ROOT_PATH, CategoryNode, CategoryTreeNode

logger = logging.getLogger(__name__)

CATEGORIES_COLLECTION = "categories"
PAGES_COLLECTION = "pages"

CARD_ICONS = ["folder", "file-alt", "cog", "folder-open"]
CARD_COLORS = ["#FFC107", "#2196F3", "#4CAF50", "#E91E63", "#9C27B0"]


def card_style(title: str) -> tuple[str, str]:
    """Same title -> same (icon, color)."""
    h = sum(ord(ch) for ch in title)
    return CARD_ICONS[h % len(CARD_ICONS)], CARD_COLORS[h % len(CARD_COLORS)]


# ---------- pure helpers over a flat node list ----------

def _ids(nodes: list[CategoryNode]) -> set[str]:
    return {n.id for n in nodes}


def is_root_node(node_id: str, nodes: list[CategoryNode]) -> bool:
    """A node whose parent is missing or unknown is a root."""
    by_id = {n.id: n for n in nodes}
    node = by_id.get(node_id)
    if node is None:
        return False
    return not node.parent_id or node.parent_id not in by_id


def is_leaf_node(node_id: str, nodes: list[CategoryNode]) -> bool:
    return not any(n.parent_id == node_id for n in nodes)


def children_of(node_id: str, nodes: list[CategoryNode]) -> list[CategoryNode]:
    return [n for n in nodes if n.parent_id == node_id]


def descendant_ids(node_id: str, nodes: list[CategoryNode]) -> list[str]:
    """Depth-first, parents before children. Tolerates corrupt cycles."""
    out: list[str] = []
    seen = {node_id}
    stack = [node_id]
    while stack:
        current = stack.pop()
        for child in children_of(current, nodes):
            if child.id in seen:
                continue
            seen.add(child.id)
            out.append(child.id)
            stack.append(child.id)
    return out


def organize(nodes: list[CategoryNode]) -> list[CategoryTreeNode]:
    by_id = {n.id: CategoryTreeNode(**n.model_dump()) for n in nodes}
    roots: list[CategoryTreeNode] = []
    for n in nodes:
        node = by_id[n.id]
        if n.parent_id and n.parent_id in by_id:
            by_id[n.parent_id].children.append(node)
        else:
            roots.append(node)
    return roots


class CategoryTreeService:
    """CRUD over the authoring tree, stored on the primary backend."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def list(self) -> list[CategoryNode]:
        docs = await self.store.query(CATEGORIES_COLLECTION)
        return [CategoryNode.model_validate(d) for d in docs]

    async def tree(self) -> list[CategoryTreeNode]:
        return organize(await self.list())

    async def get(self, node_id: str) -> CategoryNode | None:
        doc = await self.store.get(CATEGORIES_COLLECTION, node_id)
        return CategoryNode.model_validate(doc) if doc else None

    async def exists(self, node_id: str) -> bool:
        return await self.store.get(CATEGORIES_COLLECTION, node_id) is not None

    async def create(self, node_id: str, title: str, parent_id: str | None = None) -> CategoryNode:
        node_id = (node_id or "").strip()
        title = (title or "").strip()
        if not node_id or not title:
            raise ValidationError("Report ID and Title are required.")

        if await self.exists(node_id):
            raise DuplicateIdError(node_id)

        parent_path = ROOT_PATH
        if parent_id:
            parent = await self.get(parent_id)
            if parent is None:
                raise ValidationError(f"Parent category '{parent_id}' does not exist")
            parent_path = parent.path or ROOT_PATH

        icon, color = card_style(title)
        node = CategoryNode(
            id=node_id,
            title=title,
            parent_id=parent_id or None,
            path=re.sub(r"/+", "/", f"{parent_path}/{node_id}"),
            icon=icon,
            color=color,
            is_page=True,
            page_id=node_id,
            last_updated=datetime.now(timezone.utc),
        )
        await self.store.put(CATEGORIES_COLLECTION, node_id, to_document(node))
        logger.info("category created: %s (parent=%s)", node_id, parent_id)
        return node

    async def rename(self, node_id: str, title: str) -> CategoryNode:
        """Title and last_updated only; path keeps the original id chain."""
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required.")

        node = await self.get(node_id)
        if node is None:
            raise ValidationError(f"Category '{node_id}' does not exist")

        node.title = title
        node.last_updated = datetime.now(timezone.utc)
        await self.store.put(CATEGORIES_COLLECTION, node_id, to_document(node))
        return node

    async def delete_subtree(self, node_id: str) -> list[str]:
        """
        Removes the node, every descendant and each one's page configuration in
        a single batch. Returns the deleted ids.
        """
        nodes = await self.list()
        if node_id not in _ids(nodes):
            raise ValidationError(f"Category '{node_id}' does not exist")

        ids = [node_id, *descendant_ids(node_id, nodes)]
        async with self.store.batch() as batch:
            for i in ids:
                batch.delete(CATEGORIES_COLLECTION, i)
                batch.delete(PAGES_COLLECTION, i)

        logger.info("category subtree deleted: %s (%d nodes)", node_id, len(ids))
        return ids

    async def is_leaf(self, node_id: str) -> bool:
        return is_leaf_node(node_id, await self.list())

    async def is_root(self, node_id: str) -> bool:
        return is_root_node(node_id, await self.list())
