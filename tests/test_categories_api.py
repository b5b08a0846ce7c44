import importlib.util
import uuid
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import text

from conftest import load_user, signup
from portfolio.crud import category as category_crud
from portfolio.crud.category import add_entry, reconcile_duplicate_slugs, require_category
from portfolio.models.category import LEGACY_SLUG_INDEX, Category

DUPLICATE_SLUG = "You already have a category with this slug. Please choose a different name or slug."


def miss_first_slug_check(monkeypatch):
    """The first uniqueness pre-check reports the slug as free, as if a concurrent insert won the race."""
    real_slug_taken = category_crud.slug_taken
    calls = []

    async def slug_taken(*args, **kwargs):
        calls.append(args)
        if len(calls) == 1:
            return False
        return await real_slug_taken(*args, **kwargs)

    monkeypatch.setattr(category_crud, "slug_taken", slug_taken)
    return calls


async def count_categories(engine):
    async with engine.connect() as conn:
        result = await conn.execute(text("SELECT COUNT(*) FROM categories"))
        return result.scalar_one()


async def create_category(client, **body):
    response = await client.post("/api/categories", json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def add(client, slug, **body):
    response = await client.post(f"/api/categories/{slug}/entries", json=body)
    assert response.status_code == 201, response.text
    return response.json()["data"]


# ────────────────────────────────────────────────────────────────────────────────
# CATEGORIES
# ────────────────────────────────────────────────────────────────────────────────
async def test_requires_session(client):
    response = await client.get("/api/categories")
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Not authenticated"}


async def test_create_category_derives_slug_and_defaults(client):
    await signup(client)
    data = await create_category(client, name="  Mutual Funds (India) ")

    assert data["name"] == "Mutual Funds (India)"
    assert data["slug"] == "mutual-funds-india"
    assert data["displayName"] == "Mutual Funds (India)"
    assert data["description"] == ""
    assert data["expectedPercent"] == 15
    assert data["currentValue"] == 0
    assert data["entries"] == []


async def test_create_category_validation(client):
    await signup(client)

    response = await client.post("/api/categories", json={"name": "   "})
    assert response.status_code == 400
    assert response.json()["error"] == "Name is required"

    response = await client.post("/api/categories", json={"name": "Stocks", "slug": "!!!"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid slug. Please provide a valid category name or slug."


async def test_duplicate_slug_is_per_user(client):
    await signup(client, email="alice@example.com")
    await create_category(client, name="Stocks")

    response = await client.post("/api/categories", json={"name": "STOCKS!"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": DUPLICATE_SLUG}

    client.cookies.clear()
    await signup(client, email="bob@example.com", name="Bob")
    data = await create_category(client, name="Stocks")
    assert data["slug"] == "stocks"


async def test_other_users_categories_are_not_visible(client):
    await signup(client, email="alice@example.com")
    await create_category(client, name="Stocks")

    client.cookies.clear()
    await signup(client, email="bob@example.com", name="Bob")

    response = await client.get("/api/categories/stocks")
    assert response.status_code == 404
    assert response.json()["error"] == "Category not found"

    response = await client.get("/api/categories")
    assert response.json() == {"success": True, "data": [], "message": None}


async def test_list_is_sorted_by_name(client):
    await signup(client)
    for name in ["Stocks", "Bonds", "Gold"]:
        await create_category(client, name=name)

    response = await client.get("/api/categories")
    assert [c["name"] for c in response.json()["data"]] == ["Bonds", "Gold", "Stocks"]


async def test_update_changes_only_sent_fields(client):
    await signup(client)
    await create_category(client, name="Stocks", expectedPercent=12, description="Equity")

    response = await client.put("/api/categories/stocks", json={"displayName": "Indian Stocks"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["displayName"] == "Indian Stocks"
    assert data["description"] == "Equity"
    assert data["expectedPercent"] == 12
    assert data["slug"] == "stocks"


async def test_rename_slug(client):
    await signup(client)
    await create_category(client, name="Stocks")
    await create_category(client, name="Bonds")

    response = await client.put("/api/categories/stocks", json={"slug": "Bonds"})
    assert response.status_code == 400
    assert response.json()["error"] == "You already have a category with this slug"

    response = await client.put("/api/categories/stocks", json={"slug": "Indian Equity"})
    assert response.status_code == 200
    assert response.json()["data"]["slug"] == "indian-equity"

    response = await client.get("/api/categories/stocks")
    assert response.status_code == 404


async def test_delete_category(client):
    await signup(client)
    await create_category(client, name="Stocks")

    response = await client.delete("/api/categories/stocks")
    assert response.status_code == 200
    assert response.json()["data"]["slug"] == "stocks"

    response = await client.get("/api/categories/stocks")
    assert response.status_code == 404


async def test_create_duplicate_caught_by_constraint(client, engine, monkeypatch):
    await signup(client)
    await create_category(client, name="Stocks")
    calls = miss_first_slug_check(monkeypatch)

    response = await client.post("/api/categories", json={"name": "Stocks"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": DUPLICATE_SLUG}
    assert len(calls) == 2
    assert await count_categories(engine) == 1


async def test_rename_duplicate_caught_by_constraint(client, monkeypatch):
    await signup(client)
    await create_category(client, name="Stocks")
    await create_category(client, name="Bonds")
    miss_first_slug_check(monkeypatch)

    response = await client.put("/api/categories/stocks", json={"slug": "bonds"})
    assert response.status_code == 400
    assert response.json()["error"] == "You already have a category with this slug"

    response = await client.get("/api/categories/stocks")
    assert response.status_code == 200


async def test_rename_conflict_with_other_user_is_internal_error(client, engine):
    async with engine.begin() as conn:
        await conn.execute(text(f"CREATE UNIQUE INDEX {LEGACY_SLUG_INDEX} ON categories (slug)"))

    await signup(client, email="alice@example.com")
    await create_category(client, name="Bonds")

    client.cookies.clear()
    await signup(client, email="bob@example.com", name="Bob")
    await create_category(client, name="Stocks")

    response = await client.put("/api/categories/stocks", json={"slug": "bonds"})
    assert response.status_code == 500
    assert response.json()["error"] == "Database error. Please try again or contact support."

    response = await client.get("/api/categories/stocks")
    assert response.status_code == 200


async def test_legacy_slug_index_is_dropped_on_conflict(client, engine):
    async with engine.begin() as conn:
        await conn.execute(text(f"CREATE UNIQUE INDEX {LEGACY_SLUG_INDEX} ON categories (slug)"))

    await signup(client, email="alice@example.com")
    await create_category(client, name="Stocks")

    client.cookies.clear()
    await signup(client, email="bob@example.com", name="Bob")
    data = await create_category(client, name="Stocks")
    assert data["slug"] == "stocks"

    async with engine.connect() as conn:
        result = await conn.execute(
            text("SELECT name FROM sqlite_master WHERE type = 'index' AND name = :name"),
            {"name": LEGACY_SLUG_INDEX},
        )
        assert result.first() is None


# ────────────────────────────────────────────────────────────────────────────────
# ENTRIES
# ────────────────────────────────────────────────────────────────────────────────
async def test_entry_lifecycle_recomputes_current_value(client):
    await signup(client)
    await create_category(client, name="Stocks")

    data = await add(client, "stocks", name="A", quantity=10, invested=1000, currentValue=1200)
    assert data["currentValue"] == 1200

    data = await add(client, "stocks", name="B", quantity=5, invested=1000)
    assert data["currentValue"] == 1200
    first, second = data["entries"]
    assert second["currentValue"] is None
    assert second["expectedPercent"] == 10
    assert second["displayCurrentValue"] == pytest.approx(600)
    assert data["totalInvested"] == 2000

    response = await client.put(
        "/api/categories/stocks/entries",
        json={"entryIndex": 0, "currentValue": None},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["currentValue"] == 0
    assert data["entries"][0]["currentValue"] is None
    assert data["entries"][0]["quantity"] == 10

    response = await client.delete("/api/categories/stocks/entries", params={"entryIndex": 0})
    assert response.status_code == 200
    data = response.json()["data"]
    assert [e["name"] for e in data["entries"]] == ["B"]
    assert data["entries"][0]["id"] == second["id"]


async def test_setting_current_value_through_edit(client):
    await signup(client)
    await create_category(client, name="Stocks")

    data = await add(client, "stocks", name="TCS", quantity=10, invested=1000)
    assert data["currentValue"] == 0
    assert data["entries"][0]["currentValue"] is None

    response = await client.put("/api/categories/stocks/entries", json={"entryIndex": 0, "currentValue": 1200})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["currentValue"] == 1200
    assert data["entries"][0]["currentValue"] == 1200
    assert data["entries"][0]["profitLoss"] == 200
    assert data["profitLoss"] == 200


async def test_zero_current_value_is_kept(client):
    await signup(client)
    await create_category(client, name="Stocks")

    await add(client, "stocks", name="A", quantity=1, invested=500, currentValue=300)
    data = await add(client, "stocks", name="B", quantity=1, invested=500, currentValue=0)

    assert data["entries"][1]["currentValue"] == 0
    assert data["currentValue"] == 300


async def test_edit_entry_by_id(client):
    await signup(client)
    await create_category(client, name="Stocks")
    await add(client, "stocks", name="A", quantity=1, invested=100)
    data = await add(client, "stocks", name="B", quantity=2, invested=200, expectedPercent=25)
    entry_id = data["entries"][1]["id"]

    response = await client.put(
        "/api/categories/stocks/entries",
        json={"entryId": entry_id, "quantity": 4, "currentValue": 260},
    )
    assert response.status_code == 200
    edited = response.json()["data"]["entries"][1]
    assert edited["id"] == entry_id
    assert edited["name"] == "B"
    assert edited["quantity"] == 4
    assert edited["currentValue"] == 260
    assert edited["expectedPercent"] == 25
    assert response.json()["data"]["currentValue"] == 260


async def test_entry_addressing_errors(client):
    await signup(client)
    await create_category(client, name="Stocks")
    await add(client, "stocks", name="A", quantity=1, invested=100)

    response = await client.put("/api/categories/stocks/entries", json={"quantity": 3})
    assert response.status_code == 400
    assert response.json()["error"] == "entryIndex is required"

    response = await client.put("/api/categories/stocks/entries", json={"entryIndex": 1, "quantity": 3})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid entry index"

    response = await client.delete("/api/categories/stocks/entries", params={"entryIndex": -1})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid entry index"

    response = await client.delete("/api/categories/stocks/entries", params={"entryId": "missing"})
    assert response.status_code == 404
    assert response.json()["error"] == "Entry not found"

    response = await client.delete("/api/categories/other/entries", params={"entryIndex": 0})
    assert response.status_code == 404
    assert response.json()["error"] == "Category not found"


async def test_add_entry_requires_fields(client):
    await signup(client)
    await create_category(client, name="Stocks")

    response = await client.post("/api/categories/stocks/entries", json={"name": "A", "quantity": 1})
    assert response.status_code == 400
    assert response.json()["error"] == "Name, quantity, and invested are required"


async def test_edit_entry_rejects_null_required_field(client):
    await signup(client)
    await create_category(client, name="Stocks")
    await add(client, "stocks", name="A", quantity=1, invested=100)

    response = await client.put("/api/categories/stocks/entries", json={"entryIndex": 0, "invested": None})
    assert response.status_code == 400
    assert response.json()["error"] == "invested cannot be null"


async def test_entry_write_retries_after_concurrent_update(client, session_factory):
    await signup(client)
    await create_category(client, name="Stocks")
    user = await load_user(session_factory, "alice@example.com")

    async with session_factory() as first, session_factory() as second:
        # first holds a copy of the category that is about to go stale
        await require_category("stocks", user.id, first)
        await add_entry("stocks", user.id, {"name": "A", "quantity": 1, "invested": 100}, db=second)

        category = await add_entry("stocks", user.id, {"name": "B", "quantity": 1, "invested": 200}, db=first)

    assert [e["name"] for e in category.entries] == ["A", "B"]

    response = await client.get("/api/categories/stocks")
    assert [e["name"] for e in response.json()["data"]["entries"]] == ["A", "B"]


# ────────────────────────────────────────────────────────────────────────────────
# DASHBOARD
# ────────────────────────────────────────────────────────────────────────────────
async def test_dashboard_summary(client):
    await signup(client)
    await create_category(client, name="Stocks")
    await create_category(client, name="Gold")
    await add(client, "stocks", name="A", quantity=1, invested=1000, currentValue=1500)
    await add(client, "gold", name="Coins", quantity=2, invested=500, currentValue=400)

    response = await client.get("/api/dashboard/summary")
    assert response.status_code == 200
    totals = response.json()["data"]["totals"]
    assert totals["totalInvested"] == 1500
    assert totals["currentValue"] == 1900
    assert totals["profitLoss"] == 400
    assert totals["categoryCount"] == 2
    assert totals["entryCount"] == 2
    assert [c["slug"] for c in response.json()["data"]["categories"]] == ["gold", "stocks"]


async def test_csv_export(client):
    await signup(client)
    await create_category(client, name="Stocks")
    await add(client, "stocks", name="TCS", quantity=10, invested=100000, currentValue=120000)

    response = await client.get("/api/dashboard/export")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    assert response.content.startswith(b"\xef\xbb\xbf")

    lines = response.content[3:].decode("utf-8").splitlines()
    assert lines[0].startswith("Category Name,Display Name,Slug,Expected %")
    assert lines[1].startswith("Stocks,Stocks,stocks,15,")
    assert lines[1].endswith("TCS,10,\"1,00,000\"")


# ────────────────────────────────────────────────────────────────────────────────
# MAINTENANCE
# ────────────────────────────────────────────────────────────────────────────────
LEGACY_CATEGORIES_TABLE = """
CREATE TABLE categories (
    id CHAR(32) NOT NULL PRIMARY KEY,
    user_id CHAR(32) NOT NULL,
    name VARCHAR(100) NOT NULL,
    slug VARCHAR(120) NOT NULL,
    display_name VARCHAR(100),
    description VARCHAR(500),
    expected_percent FLOAT NOT NULL,
    current_value FLOAT NOT NULL,
    entries JSON NOT NULL,
    version INTEGER NOT NULL,
    created_at DATETIME,
    updated_at DATETIME
)
"""


async def test_reconcile_duplicate_slugs(engine, session_factory):
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE categories"))
        await conn.execute(text(LEGACY_CATEGORIES_TABLE))

    user_id = uuid.uuid4()
    start = datetime(2024, 1, 1)
    rows = [("Stocks", "stocks", 1), ("Stocks", "stocks", 2), ("Stocks", "stocks", 3), ("Old", "stocks-1", 0)]

    async with session_factory() as session:
        for name, slug, day in rows:
            session.add(
                Category(
                    user_id=user_id,
                    name=name,
                    slug=slug,
                    expected_percent=15.0,
                    current_value=0.0,
                    entries=[],
                    created_at=start + timedelta(days=day),
                )
            )
        await session.commit()

    async with session_factory() as session:
        renamed = await reconcile_duplicate_slugs(session)

    assert [(old, new) for _, old, new in renamed] == [("stocks", "stocks-2"), ("stocks", "stocks-3")]

    async with engine.connect() as conn:
        result = await conn.execute(text("SELECT slug FROM categories ORDER BY created_at"))
        assert [row[0] for row in result] == ["stocks-1", "stocks", "stocks-2", "stocks-3"]

    async with session_factory() as session:
        assert await reconcile_duplicate_slugs(session) == []


def load_migration(name):
    path = Path(__file__).resolve().parent.parent / "alembic" / "versions" / f"{name}.py"
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


async def test_per_user_slug_migration_renames_duplicates(engine, session_factory):
    migration = load_migration("0002_per_user_slugs")
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE categories"))
        await conn.execute(text(LEGACY_CATEGORIES_TABLE))

    alice, bob = uuid.uuid4(), uuid.uuid4()
    start = datetime(2024, 1, 1)
    rows = [(alice, "stocks", 1), (alice, "stocks", 2), (alice, "stocks-1", 0), (bob, "stocks", 3)]

    async with session_factory() as session:
        for user_id, slug, day in rows:
            session.add(
                Category(
                    user_id=user_id,
                    name="Stocks",
                    slug=slug,
                    expected_percent=15.0,
                    current_value=0.0,
                    entries=[],
                    created_at=start + timedelta(days=day),
                )
            )
        await session.commit()

    async with engine.begin() as conn:
        await conn.run_sync(migration.rename_duplicate_slugs)

    async with engine.connect() as conn:
        result = await conn.execute(text("SELECT slug FROM categories ORDER BY created_at"))
        assert [row[0] for row in result] == ["stocks-1", "stocks", "stocks-2", "stocks"]
