"""
API tests

Exercise the HTTP surface against both storage media.
"""

import pytest
from fastapi.testclient import TestClient

from cvetracker.config import Settings
from cvetracker.errors import MediumUnavailable
from cvetracker.main import build_backends, create_app
from cvetracker.models import User, Vulnerability
from cvetracker.services.registry import InMemoryUserRegistry, SqlUserRegistry
from cvetracker.services.store import InMemoryVulnerabilityStore, SqlVulnerabilityStore


def _missing_id(store):
    return "999" if store.backend == "memory" else "0" * 32


# ==============================================================================
# /api/vulnerabilities
# ==============================================================================


def test_list_empty(client):
    response = client.get("/api/vulnerabilities")

    assert response.status_code == 200
    assert response.json() == []


def test_create_vulnerability(client, sample_vuln):
    response = client.post("/api/vulnerabilities", json=sample_vuln)

    assert response.status_code == 201
    data = response.json()
    assert data["_id"]
    assert data["name"] == "CVE-X"
    assert data["severity"] == 7.2
    assert data["description"] == "desc"
    assert data["status"] == "Pending"
    assert data["dateLogged"]


@pytest.mark.parametrize("body", [
    {"severity": "7.2", "description": "desc"},
    {"name": "CVE-X", "description": "desc"},
    {"name": "CVE-X", "severity": "7.2", "description": ""},
    {"name": "CVE-X", "severity": "high", "description": "desc"},
    ["not", "an", "object"],
])
def test_create_rejects_invalid_input(client, body):
    response = client.post("/api/vulnerabilities", json=body)

    assert response.status_code == 400
    assert client.get("/api/vulnerabilities").json() == []


def test_create_rejects_malformed_json(client):
    response = client.post(
        "/api/vulnerabilities",
        content="{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400


def test_list_sorted_newest_first(client):
    for name, date in [("old", "2022-07-20T00:00:00Z"), ("new", "2024-03-15T00:00:00Z"), ("mid", "2023-10-01T00:00:00Z")]:
        client.post("/api/vulnerabilities", json={
            "name": name, "severity": "5", "description": "d", "dateLogged": date,
        })

    names = [v["name"] for v in client.get("/api/vulnerabilities").json()]
    assert names == ["new", "mid", "old"]


def test_get_single_vulnerability(client, sample_vuln):
    created = client.post("/api/vulnerabilities", json=sample_vuln).json()

    response = client.get(f"/api/vulnerabilities/{created['_id']}")

    assert response.status_code == 200
    assert response.json() == created


def test_update_vulnerability(client, sample_vuln):
    created = client.post("/api/vulnerabilities", json=sample_vuln).json()

    response = client.put(f"/api/vulnerabilities/{created['_id']}", json={
        "name": "CVE-Y", "severity": "9.1", "description": "patched", "status": "Resolved",
        "dateLogged": "2030-01-01T00:00:00Z",
    })

    assert response.status_code == 200
    assert response.json() == {"message": "Vulnerability updated successfully."}
    updated = client.get(f"/api/vulnerabilities/{created['_id']}").json()
    assert updated["name"] == "CVE-Y"
    assert updated["severity"] == 9.1
    assert updated["status"] == "Resolved"
    assert updated["dateLogged"] == created["dateLogged"]


def test_update_ignores_unparseable_date_logged(client, sample_vuln):
    created = client.post("/api/vulnerabilities", json=sample_vuln).json()

    response = client.put(f"/api/vulnerabilities/{created['_id']}", json={
        "name": "CVE-Y", "severity": "5", "description": "d", "dateLogged": "yesterday",
    })

    assert response.status_code == 200
    updated = client.get(f"/api/vulnerabilities/{created['_id']}").json()
    assert updated["name"] == "CVE-Y"
    assert updated["dateLogged"] == created["dateLogged"]


def test_update_not_found(client, store, sample_vuln):
    response = client.put(f"/api/vulnerabilities/{_missing_id(store)}", json=sample_vuln)
    assert response.status_code == 404


def test_update_invalid_input(client, sample_vuln):
    created = client.post("/api/vulnerabilities", json=sample_vuln).json()

    response = client.put(f"/api/vulnerabilities/{created['_id']}", json={"name": "only"})

    assert response.status_code == 400
    assert client.get(f"/api/vulnerabilities/{created['_id']}").json()["name"] == "CVE-X"


def test_update_bad_id(client, sample_vuln):
    response = client.put("/api/vulnerabilities/not-an-id", json=sample_vuln)
    assert response.status_code == 400


def test_delete_vulnerability(client, sample_vuln):
    created = client.post("/api/vulnerabilities", json=sample_vuln).json()
    url = f"/api/vulnerabilities/{created['_id']}"

    response = client.delete(url)
    assert response.status_code == 204
    assert response.content == b""

    assert client.delete(url).status_code == 404
    assert client.get("/api/vulnerabilities").json() == []


def test_delete_bad_id(client):
    assert client.delete("/api/vulnerabilities/not-an-id").status_code == 400


def test_medium_failure_returns_500():
    class BrokenStore(InMemoryVulnerabilityStore):
        def list_all(self):
            raise MediumUnavailable("Failed to retrieve vulnerability.")

    app = create_app(Settings(store_backend="memory"), store=BrokenStore(), registry=InMemoryUserRegistry())
    with TestClient(app) as client:
        response = client.get("/api/vulnerabilities")

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to retrieve vulnerability."


def test_trailing_slash_is_redirected(client, sample_vuln):
    created = client.post("/api/vulnerabilities/", json=sample_vuln)
    assert created.status_code == 201

    response = client.get("/api/vulnerabilities/")
    assert response.status_code == 200
    assert [v["_id"] for v in response.json()] == [created.json()["_id"]]

    item = client.get(f"/api/vulnerabilities/{created.json()['_id']}/")
    assert item.status_code == 200
    assert item.json()["name"] == "CVE-X"


def test_database_failure_returns_500(engine, session_factory):
    store, registry = SqlVulnerabilityStore(session_factory), SqlUserRegistry(session_factory)
    app = create_app(Settings(), store=store, registry=registry)
    Vulnerability.__table__.drop(engine)
    User.__table__.drop(engine)

    with TestClient(app) as client:
        listed = client.get("/api/vulnerabilities")
        created = client.post("/api/vulnerabilities", json={"name": "n", "severity": "1", "description": "d"})
        registered = client.post(
            "/register",
            data={"username": "alice", "password": "pw", "email": "a@x.com"},
            follow_redirects=False,
        )

    assert listed.status_code == 500
    assert listed.json()["detail"] == "Failed to retrieve vulnerability."
    assert created.status_code == 500
    assert registered.status_code == 500
    assert registered.json()["detail"] == "Internal Server Error during registration."


# ==============================================================================
# /register and pages
# ==============================================================================


def test_register_redirects_to_main_page(client, registry):
    response = client.post(
        "/register",
        data={"username": "alice", "password": "pw", "email": "a@x.com"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/cve.html"
    assert registry.find("alice") is not None


def test_register_duplicate_redirects_with_error(client, registry):
    client.post("/register", data={"username": "alice", "password": "pw", "email": "a@x.com"},
                follow_redirects=False)

    response = client.post(
        "/register",
        data={"username": "alice", "password": "pw2", "email": "b@y.com"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/?error=UserExists"
    assert registry.count() == 1


def test_register_missing_fields(client, registry):
    response = client.post("/register", data={"username": "alice", "email": "a@x.com"})

    assert response.status_code == 400
    assert response.json()["detail"] == "All fields are required."
    assert registry.count() == 0


@pytest.mark.parametrize("path,marker", [("/", "/register"), ("/cve.html", "/api/vulnerabilities")])
def test_static_pages(client, path, marker):
    response = client.get(path)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert marker in response.text


def test_health(client, store):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "backend": store.backend}


# ==============================================================================
# Startup
# ==============================================================================


def test_memory_backend_seeds_samples():
    app = create_app(Settings(store_backend="memory", seed_samples=True))
    with TestClient(app) as client:
        names = [v["name"] for v in client.get("/api/vulnerabilities").json()]
        created = client.post("/api/vulnerabilities", json={"name": "n", "severity": "1", "description": "d"})

    assert names == ["CVE-2024-0101", "CVE-2023-45678", "CVE-2022-99999"]
    assert created.json()["_id"] == 4


def test_database_backend_built_from_settings():
    app = create_app(Settings(store_backend="database", database_url="sqlite://"))
    with TestClient(app) as client:
        created = client.post("/api/vulnerabilities", json={"name": "n", "severity": "1", "description": "d"})
        listed = client.get("/api/vulnerabilities").json()

    assert created.status_code == 201
    assert len(created.json()["_id"]) == 32
    assert [v["_id"] for v in listed] == [created.json()["_id"]]


def test_unreachable_database_exits(tmp_path):
    settings = Settings(database_url=f"sqlite:///{tmp_path}/missing/dir/cvetracker.db")

    with pytest.raises(SystemExit) as excinfo:
        build_backends(settings)
    assert excinfo.value.code == 1


def test_unknown_backend_rejected():
    with pytest.raises(ValueError):
        Settings(store_backend="redis")
