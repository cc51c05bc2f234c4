# seed_dev.py
import asyncio

from dotenv import load_dotenv

load_dotenv()

from formportal.core.errors import DuplicateIdError
from formportal.db.document_store import DualStore
from formportal.db.session import init_models, stores
from formportal.schemas.form_config import FormConfiguration
from formportal.services.category_tree import CategoryTreeService
from formportal.services.form_config_store import FormConfigStore
from formportal.services.location_hierarchy import OFFICES_COLLECTION


OFFICES = [
    ("north-div", "North", "North Division", "North Division", None),
    ("town-a", "North", "North Division", "Town A", "North Division"),
    ("town-b", "North", "North Division", "Town B", "North Division"),
    ("south-div", "South", "South Division", "South Division", None),
    ("town-c", "South", "South Division", "Town C", "South Division"),
]

EMPLOYEES = [
    {"id": "admin-1", "email": "admin@local.test", "office_name": "North Division", "is_admin": True},
    {"id": "user-1", "email": "user@local.test", "office_name": "Town A", "is_admin": False},
]

CATEGORIES = [
    ("sales", "Sales", None),
    ("daily-sales", "Daily Sales", "sales"),
    ("stock", "Stock", None),
    ("weekly-stock", "Weekly Stock Count", "stock"),
]


# ---------- helpers ----------

async def ensure_category(service: CategoryTreeService, node_id: str, title: str, parent_id: str | None):
    try:
        await service.create(node_id, title, parent_id)
        print(f"  category created: {node_id}")
    except DuplicateIdError:
        print(f"  category exists: {node_id}")


async def seed(dual: DualStore):
    print("Seeding offices...")
    for office_id, region, division, name, reporting in OFFICES:
        await dual.primary.put(
            OFFICES_COLLECTION,
            office_id,
            {
                "Facility ID": office_id,
                "Region": region,
                "Division": division,
                "Office name": name,
                "Reporting Office Name": reporting,
            },
        )

    print("Seeding employees...")
    for emp in EMPLOYEES:
        await dual.primary.put("employees", emp["id"], {**emp, "is_active": True})

    print("Seeding categories...")
    categories = CategoryTreeService(dual.primary)
    for node_id, title, parent_id in CATEGORIES:
        await ensure_category(categories, node_id, title, parent_id)

    print("Seeding form configurations...")
    configs = FormConfigStore(dual)
    if await configs.load("daily-sales") is None:
        await configs.save(
            FormConfiguration.model_validate(
                {
                    "id": "daily-sales",
                    "title": "Daily Sales",
                    "fields": [
                        {"id": "office", "kind": "dropdown", "label": "Office Name", "required": True},
                        {"id": "date", "kind": "date", "label": "Date", "required": True},
                        {"id": "amount", "kind": "number", "label": "Amount", "min": 0, "required": True},
                        {"id": "channels", "kind": "checkboxGroup", "label": "Channels",
                         "options": ["Counter", "Online", "Phone"]},
                        {"id": "notes", "kind": "textarea", "label": "Notes"},
                    ],
                    "scope": {"selected_regions": ["North"], "selected_frequency": "daily"},
                }
            )
        )
        print("  config created: daily-sales")

    print("✅ Dev seed complete.")
    print("Use headers like: X-User-Id: admin-1  or  X-User-Id: user-1")


async def main():
    await init_models()
    await seed(stores)


if __name__ == "__main__":
    asyncio.run(main())
