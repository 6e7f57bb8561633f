"""Availability writes and their audit rows."""

from pathlib import Path

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

import canteen.services.availability_service as availability_module
from canteen.core.errors import MSG_ITEM_NOT_FOUND
from canteen.db.base import Base
from canteen.models import MenuItem, MenuUpdate
from canteen.schemas.results import WriteOutcome
from canteen.services.audit_service import record_menu_update
from canteen.services.availability_service import AvailabilityService
from canteen.services.identity_provider import IdentityClient
from canteen.services.session_service import SessionAdapter


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _setup(tmp_path: Path, name: str, items: list[tuple[str, str, bool]]):
    engine = _build_test_engine(tmp_path / name)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with factory() as db:
        for item_name, category, is_available in items:
            db.add(MenuItem(name=item_name, category=category, image="", is_available=is_available))
        db.commit()
        ids = {row.name: row.id for row in db.scalars(select(MenuItem)).all()}

    adapter = SessionAdapter(IdentityClient(factory), factory)
    assert adapter.sign_up("hari@forester.example", "secret123", "Hari").success
    service = AvailabilityService(factory, adapter.identity)
    return factory, ids, adapter, service


def _audit_rows(factory: sessionmaker) -> list[MenuUpdate]:
    with factory() as db:
        return list(db.scalars(select(MenuUpdate).order_by(MenuUpdate.id)).all())


def test_toggling_item_writes_item_and_one_audit_row(tmp_path: Path) -> None:
    factory, ids, adapter, service = _setup(
        tmp_path,
        "test_toggle.db",
        [("Chicken Biryani", "Meals", False), ("Veg Meals", "Meals", False)],
    )
    biryani_id = ids["Chicken Biryani"]

    result = service.set_availability(biryani_id, True, "Hari")

    assert result.success is True
    assert result.outcome is WriteOutcome.APPLIED
    assert result.update_id is not None
    with factory() as db:
        assert db.get(MenuItem, biryani_id).is_available is True
        assert db.get(MenuItem, ids["Veg Meals"]).is_available is False

    rows = _audit_rows(factory)
    assert len(rows) == 1
    assert rows[0].action == "added"
    assert rows[0].admin_name == "Hari"
    assert rows[0].admin_id == adapter.session.user_id
    assert rows[0].item_id == biryani_id
    assert rows[0].item_name == "Chicken Biryani"

    assert service.set_availability(biryani_id, False, "Hari").success is True
    rows = _audit_rows(factory)
    assert [row.action for row in rows] == ["added", "removed"]


def test_setting_same_value_still_records_audit_row(tmp_path: Path) -> None:
    factory, ids, _, service = _setup(tmp_path, "test_same_value.db", [("Samosa", "Snacks", True)])

    assert service.set_availability(ids["Samosa"], True, "Hari").success is True

    rows = _audit_rows(factory)
    assert len(rows) == 1
    assert rows[0].action == "added"


def test_unknown_item_fails_without_audit_row(tmp_path: Path) -> None:
    factory, _, _, service = _setup(tmp_path, "test_unknown.db", [("Samosa", "Snacks", False)])

    result = service.set_availability(9999, True, "Hari")

    assert result.success is False
    assert result.outcome is WriteOutcome.NOT_APPLIED
    assert result.error == MSG_ITEM_NOT_FOUND
    assert _audit_rows(factory) == []


def test_signed_out_identity_cannot_write(tmp_path: Path) -> None:
    factory, ids, adapter, service = _setup(tmp_path, "test_signed_out.db", [("Upma", "Breakfast", False)])
    adapter.sign_out()

    result = service.set_availability(ids["Upma"], True, "Hari")

    assert result.success is False
    assert result.error.startswith("Not authenticated")
    with factory() as db:
        assert db.get(MenuItem, ids["Upma"]).is_available is False
    assert _audit_rows(factory) == []


def test_failed_audit_insert_leaves_item_unchanged(tmp_path: Path, monkeypatch) -> None:
    factory, ids, _, service = _setup(tmp_path, "test_atomic.db", [("Masala Dosa", "Breakfast", False)])

    def _broken_audit(*args, **kwargs):
        raise OperationalError("INSERT INTO menu_updates", {}, Exception("database is locked"))

    monkeypatch.setattr(availability_module, "record_menu_update", _broken_audit)

    result = service.set_availability(ids["Masala Dosa"], True, "Hari")

    assert result.success is False
    assert result.outcome is WriteOutcome.NOT_APPLIED
    with factory() as db:
        assert db.get(MenuItem, ids["Masala Dosa"]).is_available is False
    assert _audit_rows(factory) == []


def test_bulk_deselect_continues_past_a_failing_item(tmp_path: Path, monkeypatch) -> None:
    items = [
        ("Filter Coffee", "Beverages", True),
        ("Masala Chai", "Beverages", True),
        ("Fresh Lime Soda", "Beverages", True),
        ("Samosa", "Snacks", True),
    ]
    factory, ids, _, service = _setup(tmp_path, "test_bulk.db", items)

    def _audit_failing_for_soda(db, **kwargs):
        if kwargs["item_name"] == "Fresh Lime Soda":
            raise OperationalError("INSERT INTO menu_updates", {}, Exception("database is locked"))
        return record_menu_update(db, **kwargs)

    monkeypatch.setattr(availability_module, "record_menu_update", _audit_failing_for_soda)

    ordered_ids = [ids[name] for name, _, _ in items]
    bulk = service.set_availability_bulk(ordered_ids, False, "Hari")

    assert len(bulk.results) == 4
    assert bulk.success is False
    assert bulk.failed_ids == [ids["Fresh Lime Soda"]]
    assert bulk.succeeded_ids == [ids["Filter Coffee"], ids["Masala Chai"], ids["Samosa"]]
    with factory() as db:
        states = {row.name: row.is_available for row in db.scalars(select(MenuItem)).all()}
    assert states == {
        "Filter Coffee": False,
        "Masala Chai": False,
        "Fresh Lime Soda": True,
        "Samosa": False,
    }
    assert len(_audit_rows(factory)) == 3


def test_apply_selection_writes_only_changed_items(tmp_path: Path) -> None:
    items = [
        ("Idli Sambar", "Breakfast", True),
        ("Upma", "Breakfast", False),
        ("Curd Rice", "Meals", False),
        ("Medu Vada", "Snacks", True),
    ]
    factory, ids, _, service = _setup(tmp_path, "test_selection.db", items)

    bulk = service.apply_selection([ids["Idli Sambar"], ids["Curd Rice"]], "Hari")

    assert bulk.success is True
    assert sorted(bulk.succeeded_ids) == sorted([ids["Curd Rice"], ids["Medu Vada"]])
    with factory() as db:
        available = {row.name for row in db.scalars(select(MenuItem).where(MenuItem.is_available.is_(True))).all()}
    assert available == {"Idli Sambar", "Curd Rice"}

    rows = _audit_rows(factory)
    assert {(row.item_name, row.action) for row in rows} == {("Curd Rice", "added"), ("Medu Vada", "removed")}


def test_apply_selection_reports_catalog_read_failure(tmp_path: Path) -> None:
    _, _, adapter, _ = _setup(tmp_path, "test_selection_read.db", [("Upma", "Breakfast", False)])

    def _broken_factory():
        raise OperationalError("SELECT", {}, Exception("unable to open database file"))

    service = AvailabilityService(_broken_factory, adapter.identity)
    bulk = service.apply_selection([], "Hari")

    assert bulk.error == "Failed to fetch menu items"
    assert bulk.results == []
    assert bulk.success is False
