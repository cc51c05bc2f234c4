from fastapi.testclient import TestClient

from formportal.main import app
from tests.helpers import create_employee, office_record, run, seed_offices


def test_me_requires_header(api_stores):
    client = TestClient(app)
    r = client.get("/me")
    assert r.status_code == 401


def test_me_unknown_user(api_stores):
    client = TestClient(app)
    r = client.get("/me", headers={"X-User-Id": "ghost"})
    assert r.status_code == 401


def test_me_returns_user(api_stores):
    run(create_employee(api_stores, "admin-1", office_name="HQ", is_admin=True))

    client = TestClient(app)
    r = client.get("/me", headers={"X-User-Id": "admin-1"})
    assert r.status_code == 200
    body = r.json()
    assert body["email"] == "admin-1@local.test"
    assert body["office_name"] == "HQ"
    assert body["is_admin"] is True


def test_me_access_for_division_user(api_stores):
    run(create_employee(api_stores, "u1", office_name="North Division"))
    run(
        seed_offices(
            api_stores,
            [
                office_record("North Division", "R1", "North Division"),
                office_record("Town A", "R1", "North Division", reporting_office="North Division"),
            ],
        )
    )

    client = TestClient(app)
    r = client.get("/me/access", headers={"X-User-Id": "u1"})
    assert r.status_code == 200
    body = r.json()
    assert body["is_division_user"] is True
    assert body["report_type"] == "comprehensive"
    assert body["accessible_offices"] == ["North Division", "Town A"]
