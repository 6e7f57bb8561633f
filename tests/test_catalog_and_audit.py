"""Catalog ordering, recent update feed and development seed."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from canteen.core.config import settings
from canteen.db.base import Base
from canteen.db.seed import DEFAULT_MENU, ensure_menu_seed
from canteen.models import MenuItem, MenuUpdate
from canteen.schemas.menu import MenuItemRead
from canteen.services.audit_service import list_recent_updates
from canteen.services.catalog_service import create_menu_item, group_by_category, list_menu_items


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _factory(tmp_path: Path, name: str) -> sessionmaker:
    engine = _build_test_engine(tmp_path / name)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def test_list_menu_items_orders_by_category_then_name(tmp_path: Path) -> None:
    factory = _factory(tmp_path, "test_catalog_order.db")
    with factory() as db:
        create_menu_item(db, name="Upma", category="Breakfast")
        create_menu_item(db, name="Samosa", category="Snacks", is_available=True)
        create_menu_item(db, name="Idli Sambar", category="Breakfast", is_available=True)
        create_menu_item(db, name="Curd Rice", category="Meals")

        first = [(item.category, item.name) for item in list_menu_items(db)]
        second = [(item.category, item.name) for item in list_menu_items(db)]

    assert first == [
        ("Breakfast", "Idli Sambar"),
        ("Breakfast", "Upma"),
        ("Meals", "Curd Rice"),
        ("Snacks", "Samosa"),
    ]
    assert second == first


def test_create_menu_item_requires_name_and_category(tmp_path: Path) -> None:
    factory = _factory(tmp_path, "test_catalog_create.db")
    with factory() as db:
        with pytest.raises(ValueError, match="Name is required"):
            create_menu_item(db, name="  ", category="Snacks")
        with pytest.raises(ValueError, match="Category is required"):
            create_menu_item(db, name="Samosa", category="")
        item = create_menu_item(db, name="Samosa", category="Snacks")

    assert item.is_available is False
    assert item.created_at is not None


def test_group_by_category_can_hide_unavailable_items() -> None:
    now = datetime.now(timezone.utc)
    items = [
        MenuItemRead(id=1, name="Idli Sambar", category="Breakfast", image="", is_available=True, created_at=now, updated_at=now),
        MenuItemRead(id=2, name="Upma", category="Breakfast", image="", is_available=False, created_at=now, updated_at=now),
        MenuItemRead(id=3, name="Curd Rice", category="Meals", image="", is_available=False, created_at=now, updated_at=now),
    ]

    everything = group_by_category(items)
    public = group_by_category(items, available_only=True)

    assert list(everything) == ["Breakfast", "Meals"]
    assert [item.name for item in everything["Breakfast"]] == ["Idli Sambar", "Upma"]
    assert list(public) == ["Breakfast"]
    assert [item.name for item in public["Breakfast"]] == ["Idli Sambar"]


def test_recent_updates_are_newest_first_and_limited(tmp_path: Path) -> None:
    factory = _factory(tmp_path, "test_audit_feed.db")
    start = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)
    with factory() as db:
        for minute in range(12):
            db.add(
                MenuUpdate(
                    admin_id="admin-1",
                    admin_name="Hari",
                    item_id=minute,
                    item_name=f"Item {minute}",
                    action="added" if minute % 2 == 0 else "removed",
                    created_at=start + timedelta(minutes=minute),
                )
            )
        db.commit()

        recent = list_recent_updates(db, 10)
        assert len(recent) == 10
        assert [row.item_name for row in recent[:3]] == ["Item 11", "Item 10", "Item 9"]
        assert recent[-1].item_name == "Item 2"

        assert len(list_recent_updates(db, 50)) == 12
        with pytest.raises(ValueError):
            list_recent_updates(db, 0)


def test_menu_seed_runs_once_in_dev_only(tmp_path: Path, monkeypatch) -> None:
    factory = _factory(tmp_path, "test_seed.db")
    monkeypatch.setattr(settings, "app_env", "prod")
    monkeypatch.setattr(settings, "seed_menu", True)
    with factory() as db:
        assert ensure_menu_seed(db) == 0

    monkeypatch.setattr(settings, "app_env", "dev")
    with factory() as db:
        assert ensure_menu_seed(db) == len(DEFAULT_MENU)
        assert ensure_menu_seed(db) == 0
        assert db.scalar(select(func.count()).select_from(MenuItem)) == len(DEFAULT_MENU)
        assert db.scalar(select(func.count()).select_from(MenuItem).where(MenuItem.is_available.is_(True))) == 0
        categories = {row.category for row in db.scalars(select(MenuItem)).all()}

    assert categories == {"Breakfast", "Meals", "Snacks", "Beverages"}
