"""Tests for the FastAPI web API."""

import json
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from linkz.api.validators import validate_links
from linkz.storage.writer import DEFAULT_PREFERENCES

PASSWORD = "longenough1"


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "titled.example":
        return httpx.Response(200, text="<html><head><title> Titled Site </title></head></html>")
    if request.url.path == "/favicon.ico" and request.url.host == "icon.example":
        return httpx.Response(200, content=b"\x00\x00\x01\x00")
    return httpx.Response(404)


def _link(**overrides: object) -> dict:
    link = {"id": "1", "name": "Example", "url": "https://example.com", "order": 0}
    link.update(overrides)
    return link


@pytest.fixture()
def client(tmp_path: Path):
    from linkz.api.routes import create_app

    app = create_app(data_dir=tmp_path, http_transport=httpx.MockTransport(_handler))
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def authed_client(client: TestClient) -> TestClient:
    client.post("/api/setup", json={"username": "admin", "password": PASSWORD})
    resp = client.post("/api/login", json={"username": "admin", "password": PASSWORD})
    assert resp.status_code == 200
    return client


class TestStartup:
    def test_lifespan_creates_document(self, client: TestClient, tmp_path: Path) -> None:
        doc = json.loads((tmp_path / "data.json").read_text())
        assert len(doc["secret"]) == 64
        assert doc["user"] is None


class TestSetup:
    def test_check_needs_setup(self, client: TestClient) -> None:
        resp = client.get("/api/setup/check")
        assert resp.status_code == 200
        assert resp.json() == {"needsSetup": True}

    def test_setup_creates_account(self, client: TestClient) -> None:
        resp = client.post("/api/setup", json={"username": "admin", "password": PASSWORD})
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert client.get("/api/setup/check").json() == {"needsSetup": False}

    def test_short_username_rejected(self, client: TestClient) -> None:
        resp = client.post("/api/setup", json={"username": "ab", "password": PASSWORD})
        assert resp.status_code == 400
        assert "Username" in resp.json()["error"]

    def test_short_password_rejected(self, client: TestClient) -> None:
        resp = client.post("/api/setup", json={"username": "admin", "password": "short"})
        assert resp.status_code == 400
        assert "Password" in resp.json()["error"]

    def test_second_setup_rejected(self, client: TestClient) -> None:
        client.post("/api/setup", json={"username": "admin", "password": PASSWORD})
        resp = client.post("/api/setup", json={"username": "other", "password": PASSWORD})
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "User already exists"}


class TestLogin:
    def test_missing_fields(self, client: TestClient) -> None:
        resp = client.post("/api/login", json={"username": "admin"})
        assert resp.status_code == 400

    def test_wrong_password(self, client: TestClient) -> None:
        client.post("/api/setup", json={"username": "admin", "password": PASSWORD})
        resp = client.post("/api/login", json={"username": "admin", "password": "wrongpass1"})
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid credentials"
        assert "set-cookie" not in resp.headers

    def test_success_sets_session_cookie(self, client: TestClient) -> None:
        client.post("/api/setup", json={"username": "admin", "password": PASSWORD})
        resp = client.post("/api/login", json={"username": "admin", "password": PASSWORD})
        assert resp.status_code == 200
        header = resp.headers["set-cookie"]
        assert header.startswith("session=")
        assert "HttpOnly" in header
        assert "Max-Age=604800" in header
        assert "Path=/" in header
        assert "samesite=lax" in header.lower()
        token, sig = resp.cookies["session"].split(".")
        assert len(token) == 64 and len(sig) == 64


class TestAuthMiddleware:
    def test_api_requires_session(self, client: TestClient) -> None:
        resp = client.get("/api/links")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}

    def test_session_grants_access(self, authed_client: TestClient) -> None:
        assert authed_client.get("/api/links").status_code == 200

    def test_tampered_cookie_rejected(self, authed_client: TestClient) -> None:
        cookie = authed_client.cookies["session"]
        tampered = cookie[:-1] + ("0" if cookie[-1] != "0" else "1")
        authed_client.cookies.clear()
        resp = authed_client.get("/api/links", headers={"Cookie": f"session={tampered}"})
        assert resp.status_code == 401

    def test_non_api_paths_not_gated(self, client: TestClient) -> None:
        assert client.get("/nope").status_code == 404


class TestLogout:
    def test_logout_clears_cookie_and_session(self, authed_client: TestClient) -> None:
        cookie = authed_client.cookies["session"]
        resp = authed_client.post("/api/logout")
        assert resp.status_code == 200
        header = resp.headers["set-cookie"]
        assert header.startswith('session=""') or header.startswith("session=;")
        assert "Max-Age=0" in header

        authed_client.cookies.clear()
        resp = authed_client.get("/api/links", headers={"Cookie": f"session={cookie}"})
        assert resp.status_code == 401

    def test_logout_without_cookie_ok(self, client: TestClient) -> None:
        assert client.post("/api/logout").status_code == 200


class TestResetCredentials:
    def test_requires_auth(self, client: TestClient) -> None:
        assert client.post("/api/reset-credentials").status_code == 401

    def test_reset_returns_to_setup(self, authed_client: TestClient) -> None:
        resp = authed_client.post("/api/reset-credentials")
        assert resp.status_code == 200
        assert "Max-Age=0" in resp.headers["set-cookie"]
        assert authed_client.get("/api/setup/check").json() == {"needsSetup": True}


class TestLinks:
    def test_empty_by_default(self, authed_client: TestClient) -> None:
        assert authed_client.get("/api/links").json() == {"links": []}

    def test_save_and_get(self, authed_client: TestClient) -> None:
        links = [_link(), _link(id="2", url="http://other.example", order=1, color="red")]
        resp = authed_client.post("/api/links", json={"links": links})
        assert resp.status_code == 200
        assert authed_client.get("/api/links").json() == {"links": links}

    @pytest.mark.parametrize(
        ("links", "error"),
        [
            ("nope", "Links must be an array"),
            ([_link(name="")], "Invalid link format"),
            ([_link(order="1")], "Invalid link format"),
            ([_link(), _link(name="Dup")], "Duplicate link ID"),
            ([_link(order=-1)], "Order must be non-negative"),
            ([_link(url="ftp://example.com")], "URL must be HTTP or HTTPS"),
            ([_link(url="not a url")], "Invalid URL"),
        ],
    )
    def test_invalid_links_rejected(self, authed_client: TestClient, links: object, error: str) -> None:
        resp = authed_client.post("/api/links", json={"links": links})
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": error}

    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_order_rejected(
        self, authed_client: TestClient, tmp_path: Path, constant: str
    ) -> None:
        body = (
            '{"links": [{"id": "1", "name": "Example", "url": "https://example.com", '
            f'"order": {constant}}}]}}'
        )
        resp = authed_client.post(
            "/api/links", content=body.encode(), headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Invalid JSON"}
        assert json.loads((tmp_path / "data.json").read_text())["links"] == []
        assert authed_client.get("/api/links").status_code == 200

    @pytest.mark.parametrize("order", [float("nan"), float("inf")])
    def test_validator_rejects_non_finite_order(self, order: float) -> None:
        assert validate_links([_link(order=order)]) == "Invalid link format"

    def test_invalid_json_rejected(self, authed_client: TestClient) -> None:
        resp = authed_client.post(
            "/api/links", content=b"{oops", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400


class TestPreferences:
    def test_defaults(self, authed_client: TestClient) -> None:
        assert authed_client.get("/api/preferences").json() == {"preferences": DEFAULT_PREFERENCES}

    def test_save(self, authed_client: TestClient) -> None:
        prefs = {**DEFAULT_PREFERENCES, "theme": "light", "backgroundColor": "white"}
        assert authed_client.post("/api/preferences", json={"preferences": prefs}).status_code == 200
        assert authed_client.get("/api/preferences").json()["preferences"] == prefs

    def test_invalid_layout(self, authed_client: TestClient) -> None:
        prefs = {**DEFAULT_PREFERENCES, "layout": "mosaic"}
        resp = authed_client.post("/api/preferences", json={"preferences": prefs})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid layout"

    def test_long_title(self, authed_client: TestClient) -> None:
        prefs = {**DEFAULT_PREFERENCES, "pageTitle": "x" * 51}
        resp = authed_client.post("/api/preferences", json={"preferences": prefs})
        assert resp.status_code == 400


class TestImportExport:
    def test_export_is_attachment(self, authed_client: TestClient) -> None:
        authed_client.post("/api/links", json={"links": [_link()]})
        resp = authed_client.get("/api/export")
        assert resp.status_code == 200
        assert "simple-linkz-export.json" in resp.headers["content-disposition"]
        assert resp.json() == {"links": [_link()], "preferences": DEFAULT_PREFERENCES}

    def test_export_excludes_credentials(self, authed_client: TestClient) -> None:
        body = authed_client.get("/api/export").text
        assert "passwordHash" not in body
        assert "secret" not in body

    def test_import_links_and_preferences(self, authed_client: TestClient) -> None:
        prefs = {"layout": "list", "theme": "light", "accentColor": "green"}
        resp = authed_client.post("/api/import", json={"links": [_link()], "preferences": prefs})
        assert resp.status_code == 200
        assert authed_client.get("/api/links").json() == {"links": [_link()]}
        assert authed_client.get("/api/preferences").json() == {"preferences": prefs}

    def test_import_empty_page_title_treated_as_omitted(self, authed_client: TestClient) -> None:
        prefs = {"layout": "grid", "theme": "dark", "accentColor": "blue", "pageTitle": ""}
        resp = authed_client.post("/api/import", json={"preferences": prefs})
        assert resp.status_code == 200
        assert authed_client.get("/api/preferences").json() == {"preferences": prefs}

    def test_import_invalid_preferences_saves_nothing(self, authed_client: TestClient) -> None:
        resp = authed_client.post(
            "/api/import",
            json={"links": [_link()], "preferences": {"layout": "grid", "theme": "neon"}},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid preferences"
        assert authed_client.get("/api/links").json() == {"links": []}


class TestLinkMetadata:
    def test_page_title(self, authed_client: TestClient) -> None:
        resp = authed_client.get("/api/page-title", params={"url": "https://titled.example/"})
        assert resp.json() == {"title": "Titled Site"}

    def test_page_title_falls_back_to_domain(self, authed_client: TestClient) -> None:
        resp = authed_client.get("/api/page-title", params={"url": "https://www.missing.example/x"})
        assert resp.json() == {"title": "missing.example"}

    def test_page_title_requires_url(self, authed_client: TestClient) -> None:
        assert authed_client.get("/api/page-title").status_code == 400

    def test_page_title_invalid_url(self, authed_client: TestClient) -> None:
        resp = authed_client.get("/api/page-title", params={"url": "nothing"})
        assert resp.status_code == 400

    def test_favicon(self, authed_client: TestClient) -> None:
        resp = authed_client.get("/api/favicon", params={"url": "https://icon.example/page"})
        assert resp.status_code == 200
        assert resp.content == b"\x00\x00\x01\x00"
        assert resp.headers["content-type"] == "image/x-icon"
        assert resp.headers["cache-control"] == "public, max-age=86400"

    def test_favicon_not_found(self, authed_client: TestClient) -> None:
        resp = authed_client.get("/api/favicon", params={"url": "https://missing.example"})
        assert resp.status_code == 404

    def test_favicon_requires_auth(self, client: TestClient) -> None:
        resp = client.get("/api/favicon", params={"url": "https://icon.example"})
        assert resp.status_code == 401


class TestStorageFailures:
    def test_corrupt_document_returns_500(self, client: TestClient, tmp_path: Path) -> None:
        (tmp_path / "data.json").write_text("{corrupt")
        resp = client.get("/api/setup/check")
        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal server error"}

    def test_corrupt_document_fails_closed_on_protected_routes(
        self, authed_client: TestClient, tmp_path: Path
    ) -> None:
        (tmp_path / "data.json").write_text("{corrupt")
        assert authed_client.get("/api/links").status_code == 401
