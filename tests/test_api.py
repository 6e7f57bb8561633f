"""Data API, realtime socket and access rules."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from starlette.websockets import WebSocketDisconnect

from canteen.core.config import settings
from canteen.db import session as db_session
from canteen.db.base import Base
from canteen.main import app
from canteen.models import MenuItem, MenuUpdate
from canteen.services.identity_provider import IdentityClient

ANON_KEY = "test-anon-key"


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _configure(tmp_path: Path, monkeypatch, name: str) -> sessionmaker:
    db_file = tmp_path / name
    engine = _build_test_engine(db_file)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(settings, "service_url", f"sqlite:///{db_file}")
    monkeypatch.setattr(settings, "anon_key", ANON_KEY)
    monkeypatch.setattr(settings, "seed_menu", False)

    with testing_session_local() as db:
        db.add_all(
            [
                MenuItem(name="Samosa", category="Snacks", image="images/samosa.jpg", is_available=True),
                MenuItem(name="Chicken Biryani", category="Meals", image="images/chicken-biryani.jpg"),
                MenuItem(name="Idli Sambar", category="Breakfast", image="images/idli-sambar.jpg"),
            ]
        )
        db.commit()
    return testing_session_local


def _item_id(factory: sessionmaker, name: str) -> int:
    with factory() as db:
        return db.scalar(select(MenuItem.id).where(MenuItem.name == name))


def _headers(token: str | None = None) -> dict[str, str]:
    headers = {"apikey": ANON_KEY}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _sign_up(client: TestClient, email: str = "hari@forester.example", name: str = "Hari") -> str:
    response = client.post(
        "/api/v1/auth/signup",
        json={"email": email, "password": "secret123", "name": name},
        headers=_headers(),
    )
    assert response.status_code == 201
    return response.json()["access_token"]


def test_menu_listing_requires_anon_key(tmp_path: Path, monkeypatch) -> None:
    _configure(tmp_path, monkeypatch, "test_api_menu.db")

    with TestClient(app) as client:
        missing = client.get("/api/v1/menu")
        wrong = client.get("/api/v1/menu", headers={"apikey": "nope"})
        response = client.get("/api/v1/menu", headers=_headers())

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert response.status_code == 200
    body = response.json()
    assert [item["name"] for item in body["items"]] == ["Idli Sambar", "Chicken Biryani", "Samosa"]
    assert body["last_updated"]


def test_admin_toggles_item_and_sees_audit_row(tmp_path: Path, monkeypatch) -> None:
    factory = _configure(tmp_path, monkeypatch, "test_api_toggle.db")
    biryani_id = _item_id(factory, "Chicken Biryani")

    with TestClient(app) as client:
        token = _sign_up(client)

        me = client.get("/api/v1/auth/me", headers=_headers(token))
        assert me.status_code == 200
        assert me.json()["name"] == "Hari"
        assert me.json()["role"] == "admin"

        response = client.put(
            f"/api/v1/menu/{biryani_id}/availability",
            json={"is_available": True},
            headers=_headers(token),
        )
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["outcome"] == "applied"

        updates = client.get("/api/v1/updates", headers=_headers(token))
        assert updates.status_code == 200
        assert [(row["admin_name"], row["item_name"], row["action"]) for row in updates.json()] == [
            ("Hari", "Chicken Biryani", "added")
        ]

        menu_state = app.state.menu_state
        assert "Chicken Biryani" in [item.name for item in menu_state.available_items()]

    with factory() as db:
        assert db.get(MenuItem, biryani_id).is_available is True


def test_write_access_rules(tmp_path: Path, monkeypatch) -> None:
    factory = _configure(tmp_path, monkeypatch, "test_api_access.db")
    biryani_id = _item_id(factory, "Chicken Biryani")
    visitor = IdentityClient(factory)
    visitor.sign_up("visitor@forester.example", "secret123")

    with TestClient(app) as client:
        anonymous = client.put(
            f"/api/v1/menu/{biryani_id}/availability",
            json={"is_available": True},
            headers=_headers(),
        )
        garbage = client.put(
            f"/api/v1/menu/{biryani_id}/availability",
            json={"is_available": True},
            headers=_headers("not-a-token"),
        )
        unprovisioned = client.put(
            f"/api/v1/menu/{biryani_id}/availability",
            json={"is_available": True},
            headers=_headers(visitor.session.access_token),
        )
        signin = client.post(
            "/api/v1/auth/signin",
            json={"email": "visitor@forester.example", "password": "secret123"},
            headers=_headers(),
        )

        token = _sign_up(client)
        unknown = client.put(
            "/api/v1/menu/9999/availability",
            json={"is_available": True},
            headers=_headers(token),
        )

    assert anonymous.status_code == 401
    assert garbage.status_code == 401
    assert unprovisioned.status_code == 403
    assert signin.status_code == 200
    assert signin.json()["unprovisioned"] is True
    assert signin.json()["admin"] is None
    assert unknown.status_code == 404

    with factory() as db:
        assert db.get(MenuItem, biryani_id).is_available is False
        assert db.scalars(select(MenuUpdate)).all() == []


def test_sign_out_revokes_token(tmp_path: Path, monkeypatch) -> None:
    _configure(tmp_path, monkeypatch, "test_api_signout.db")

    with TestClient(app) as client:
        token = _sign_up(client)
        assert client.get("/api/v1/auth/me", headers=_headers(token)).status_code == 200

        refreshed = client.post("/api/v1/auth/refresh", headers=_headers(token))
        assert refreshed.status_code == 200
        assert refreshed.json()["admin"]["name"] == "Hari"
        token = refreshed.json()["access_token"]
        assert client.get("/api/v1/auth/me", headers=_headers(token)).status_code == 200

        signout = client.post("/api/v1/auth/signout", headers=_headers(token))
        after = client.get("/api/v1/auth/me", headers=_headers(token))

    assert signout.status_code == 204
    assert after.status_code == 401


def test_bulk_and_selection_endpoints(tmp_path: Path, monkeypatch) -> None:
    factory = _configure(tmp_path, monkeypatch, "test_api_bulk.db")
    ids = {name: _item_id(factory, name) for name in ("Samosa", "Chicken Biryani", "Idli Sambar")}

    with TestClient(app) as client:
        token = _sign_up(client)
        bulk = client.post(
            "/api/v1/menu/availability/bulk",
            json={"item_ids": [ids["Chicken Biryani"], ids["Idli Sambar"]], "is_available": True},
            headers=_headers(token),
        )
        selection = client.put(
            "/api/v1/menu/selection",
            json={"selected_ids": [ids["Idli Sambar"]]},
            headers=_headers(token),
        )
        empty_bulk = client.post(
            "/api/v1/menu/availability/bulk",
            json={"item_ids": [], "is_available": True},
            headers=_headers(token),
        )

    assert bulk.status_code == 200
    assert bulk.json()["success"] is True
    assert sorted(bulk.json()["succeeded_ids"]) == sorted([ids["Chicken Biryani"], ids["Idli Sambar"]])
    assert selection.status_code == 200
    assert sorted(selection.json()["succeeded_ids"]) == sorted([ids["Samosa"], ids["Chicken Biryani"]])
    assert empty_bulk.status_code == 422

    with factory() as db:
        available = {row.name for row in db.scalars(select(MenuItem).where(MenuItem.is_available.is_(True))).all()}
        assert available == {"Idli Sambar"}
        assert len(db.scalars(select(MenuUpdate)).all()) == 4


def test_realtime_socket_pushes_committed_changes(tmp_path: Path, monkeypatch) -> None:
    factory = _configure(tmp_path, monkeypatch, "test_api_realtime.db")
    biryani_id = _item_id(factory, "Chicken Biryani")

    with TestClient(app) as client:
        token = _sign_up(client)
        with client.websocket_connect(f"/api/v1/realtime?apikey={ANON_KEY}&table=menu_items") as websocket:
            response = client.put(
                f"/api/v1/menu/{biryani_id}/availability",
                json={"is_available": True},
                headers=_headers(token),
            )
            assert response.status_code == 200
            message = websocket.receive_json()

    assert message["table"] == "menu_items"
    assert message["event"] == "update"
    assert message["committed_at"]


def test_realtime_socket_rejects_bad_key(tmp_path: Path, monkeypatch) -> None:
    _configure(tmp_path, monkeypatch, "test_api_realtime_key.db")

    with TestClient(app) as client:
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/api/v1/realtime?apikey=wrong"):
                pass
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect(f"/api/v1/realtime?apikey={ANON_KEY}&table=auth_users"):
                pass
