import logging

from fastapi import APIRouter, Depends, HTTPException, status

from formportal.api.deps import get_category_service, get_config_store
from formportal.core.security import Principal, get_current_user, require_admin
from formportal.core.slug import slugify
from formportal.schemas.category import CategoryCreate, CategoryNode, CategoryRename, CategoryTreeNode
from formportal.services.category_tree import CategoryTreeService, is_leaf_node, is_root_node
from formportal.services.form_config_store import FormConfigStore, delete_category_subtree

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryNode])
async def list_categories(
    categories: CategoryTreeService = Depends(get_category_service),
    _: Principal = Depends(get_current_user),
):
    return await categories.list()


@router.get("/tree", response_model=list[CategoryTreeNode])
async def category_tree(
    categories: CategoryTreeService = Depends(get_category_service),
    _: Principal = Depends(get_current_user),
):
    return await categories.tree()


@router.get("/{category_id}", response_model=CategoryNode)
async def get_category(
    category_id: str,
    categories: CategoryTreeService = Depends(get_category_service),
    _: Principal = Depends(get_current_user),
):
    node = await categories.get(category_id)
    if not node:
        raise HTTPException(status_code=404, detail="Category not found")
    return node


@router.get("/{category_id}/status")
async def category_status(
    category_id: str,
    categories: CategoryTreeService = Depends(get_category_service),
    _: Principal = Depends(get_current_user),
):
    nodes = await categories.list()
    if not any(n.id == category_id for n in nodes):
        raise HTTPException(status_code=404, detail="Category not found")
    leaf = is_leaf_node(category_id, nodes)
    root = is_root_node(category_id, nodes)
    return {"id": category_id, "is_leaf": leaf, "is_root": root, "can_configure": leaf and not root}


@router.post("", response_model=CategoryNode, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    categories: CategoryTreeService = Depends(get_category_service),
    _: Principal = Depends(require_admin),
):
    return await categories.create(slugify(payload.id), payload.title, payload.parent_id)


@router.patch("/{category_id}", response_model=CategoryNode)
async def rename_category(
    category_id: str,
    payload: CategoryRename,
    categories: CategoryTreeService = Depends(get_category_service),
    _: Principal = Depends(require_admin),
):
    return await categories.rename(category_id, payload.title)


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    categories: CategoryTreeService = Depends(get_category_service),
    configs: FormConfigStore = Depends(get_config_store),
    current_user: Principal = Depends(require_admin),
):
    """
    Deletes the category, its descendants and their page configurations.
    Mirror copies are removed best-effort; failures are reported, not raised.
    """
    ids, mirror_errors = await delete_category_subtree(categories, configs, category_id)
    logger.info("category %s deleted by %s", category_id, current_user.user_id)
    return {"deleted": ids, "mirror_errors": mirror_errors}
