"""End-to-end tests for the auth routes with a fake identity broker."""

from collections.abc import Iterator
from urllib.parse import parse_qs, urlparse

import pytest
from dishka import provide
from fastapi.testclient import TestClient

from tests.support import (
    DOCTOR_SSN,
    SESSION_SECRET,
    SSN_SECRET,
    FakeIdentityBroker,
    make_account,
    make_claims,
    make_token_service,
)
from vidacure.application.api.rest.app import create_app
from vidacure.application.di import create_container
from vidacure.config import AuthConfig, Config, DatabaseConfig, SessionConfig
from vidacure.domain.auth.command.provision import ProvisionDoctor, ProvisionDoctorHandler
from vidacure.domain.auth.port.identity_broker import IdentityBroker
from vidacure.util.di.base import Provider
from vidacure.util.di.scope import Scope

FRONTEND = "http://localhost:5173"
DESKTOP_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/126.0"
APP_HEADERS = {"x-client": "app"}


class FakeBrokerProvider(Provider):
    """Replaces the Criipto adapter with an in-process fake."""

    def __init__(self, broker: IdentityBroker) -> None:
        super().__init__()
        self._broker = broker

    @provide(scope=Scope.APP)
    def get_identity_broker(self) -> IdentityBroker:
        return self._broker


def make_config() -> Config:
    return Config(
        database=DatabaseConfig(url="sqlite+aiosqlite:///:memory:"),
        auth=AuthConfig(ssn_hash_secret=SSN_SECRET, session=SessionConfig(secret=SESSION_SECRET)),
    )


def make_client(broker: FakeIdentityBroker) -> TestClient:
    config = make_config()
    container = create_container(config, FakeBrokerProvider(broker))
    app = create_app(config, container)
    return TestClient(app, follow_redirects=False, headers={"user-agent": DESKTOP_UA})


@pytest.fixture
def broker() -> FakeIdentityBroker:
    return FakeIdentityBroker(
        codes={"abc": make_claims()},
        native_tokens={"doctor-id-token": make_claims(national_id=DOCTOR_SSN, name="Dr Berg")},
    )


@pytest.fixture
def client(broker: FakeIdentityBroker) -> Iterator[TestClient]:
    with make_client(broker) as test_client:
        yield test_client


def set_cookie_headers(response, name: str) -> list[str]:
    return [h for h in response.headers.get_list("set-cookie") if h.startswith(f"{name}=")]


def browser_login(client: TestClient) -> None:
    """Run the redirect flow to completion, leaving session cookies in the client."""
    login = client.get("/api/login")
    state = parse_qs(urlparse(login.headers["location"]).query)["state"][0]
    response = client.get("/api/callback", params={"code": "abc", "state": state})
    assert response.status_code == 302


async def provision_doctor(container, national_id: str) -> str:
    async with container(scope=Scope.UOW) as uow:
        handler = await uow.get(ProvisionDoctorHandler)
        result = await handler.run(ProvisionDoctor(national_id=national_id, name="Dr Berg"))
    return result.account_id


class TestInitiateLogin:
    def test_desktop_login_redirects_with_cross_device_hint(self, client: TestClient):
        response = client.get("/api/login")

        assert response.status_code == 302
        query = parse_qs(urlparse(response.headers["location"]).query)
        assert query["acr_values"] == ["urn:grn:authn:se:bankid:another-device:qr"]
        assert query["redirect_uri"] == ["http://testserver/api/callback"]
        [state_cookie] = set_cookie_headers(response, "oauth_state")
        assert state_cookie.startswith(f"oauth_state={query['state'][0]};")
        assert "httponly" in state_cookie.lower()

    def test_mobile_browser_gets_same_device_hint(self, client: TestClient):
        response = client.get("/api/login", headers={"user-agent": "Mozilla/5.0 (iPhone)"})

        query = parse_qs(urlparse(response.headers["location"]).query)
        assert query["acr_values"] == ["urn:grn:authn:se:bankid:same-device"]

    def test_first_forwarded_proto_builds_callback_url(self, client: TestClient):
        response = client.get("/api/login", headers={"x-forwarded-proto": "https, http"})

        query = parse_qs(urlparse(response.headers["location"]).query)
        assert query["redirect_uri"] == ["https://testserver/api/callback"]

    def test_unconfigured_broker_is_503(self):
        with make_client(FakeIdentityBroker(ready=False)) as client:
            response = client.get("/api/login")

        assert response.status_code == 503
        assert response.json()["code"] == "auth_unavailable"


class TestCallback:
    """Tests for the broker callback."""

    def test_first_login_creates_patient_and_sets_cookies(self, client: TestClient):
        client.get("/api/login")
        state = client.cookies["oauth_state"]

        response = client.get("/api/callback", params={"code": "abc", "state": state})

        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert f"{location.scheme}://{location.netloc}" == FRONTEND
        params = parse_qs(location.query)
        assert params["auth"] == ["success"]
        assert params["message"] == ["Welcome! Account created successfully."]
        [session_cookie] = set_cookie_headers(response, "session_token")
        [csrf_cookie] = set_cookie_headers(response, "csrf_token")
        assert "httponly" in session_cookie.lower()
        assert "httponly" not in csrf_cookie.lower()
        assert "max-age=0" in set_cookie_headers(response, "oauth_state")[0].lower()

    def test_state_mismatch_is_rejected(self, client: TestClient, broker: FakeIdentityBroker):
        client.cookies.set("oauth_state", "X")

        response = client.get("/api/callback", params={"code": "abc", "state": "Y"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid state parameter"
        assert set_cookie_headers(response, "session_token") == []
        assert "max-age=0" in set_cookie_headers(response, "oauth_state")[0].lower()
        assert broker.exchanged == []

    def test_broker_error_redirects_to_frontend(self, client: TestClient):
        client.cookies.set("oauth_state", "X")

        response = client.get(
            "/api/callback",
            params={"state": "X", "error": "access_denied", "error_description": "Cancelled"},
        )

        assert response.status_code == 302
        params = parse_qs(urlparse(response.headers["location"]).query)
        assert params["auth"] == ["error"]
        assert params["error"] == ["broker_error"]
        assert params["message"] == ["Cancelled"]

    def test_form_post_callback(self, client: TestClient):
        client.cookies.set("oauth_state", "X")

        response = client.post("/api/callback", data={"code": "abc", "state": "X"})

        assert response.status_code == 302
        assert set_cookie_headers(response, "session_token")

    @pytest.mark.parametrize(
        "content_type, body",
        [
            ("application/json", b"{not json"),
            ("multipart/form-data", b"--x\r\ngarbage"),
        ],
    )
    def test_malformed_body_is_rejected(
        self, client: TestClient, broker: FakeIdentityBroker, content_type: str, body: bytes
    ):
        client.cookies.set("oauth_state", "X")

        response = client.post(
            "/api/callback", content=body, headers={"content-type": content_type}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_callback_request"
        assert set_cookie_headers(response, "session_token") == []
        assert "max-age=0" in set_cookie_headers(response, "oauth_state")[0].lower()
        assert broker.exchanged == []


class TestMe:
    def test_browser_session_with_csrf(self, client: TestClient):
        browser_login(client)

        response = client.get(
            "/api/me", headers={"x-csrf-token": client.cookies["csrf_token"]}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["authenticated"] is True
        assert body["user"]["role"] == "patient"
        assert body["user"]["name"] == "Anna Andersson"
        assert body["csrfToken"] == client.cookies["csrf_token"]

    def test_login_check_alias(self, client: TestClient):
        browser_login(client)

        response = client.get(
            "/api/login/check", headers={"x-csrf-token": client.cookies["csrf_token"]}
        )

        assert response.status_code == 200

    def test_missing_csrf_header_is_forbidden(self, client: TestClient):
        browser_login(client)

        response = client.get("/api/me")

        assert response.status_code == 403
        assert response.json()["code"] == "missing_csrf_token"

    def test_wrong_csrf_header_is_unauthorized(self, client: TestClient):
        browser_login(client)

        response = client.get("/api/me", headers={"x-csrf-token": "not-the-cookie"})

        assert response.status_code == 401
        assert response.json()["code"] == "csrf_mismatch"

    def test_expired_session_is_unauthorized(self, client: TestClient):
        expired = make_token_service(ttl_minutes=-5).issue(make_account())
        client.cookies.set("session_token", expired)

        response = client.get("/api/me")

        assert response.status_code == 401
        assert response.json()["authenticated"] is False
        assert response.headers["www-authenticate"] == "Bearer"

    def test_no_credential(self, client: TestClient):
        response = client.get("/api/me", headers=APP_HEADERS)

        assert response.status_code == 401
        assert response.json()["transport"] == "bearer"


class TestNativeLogin:
    def test_provisioned_doctor_logs_in_with_bearer(self, client: TestClient):
        doctor_id = client.portal.call(
            provision_doctor, client.app.state.dishka_container, DOCTOR_SSN
        )

        response = client.post(
            "/api/login", headers={**APP_HEADERS, "authorization": "Bearer doctor-id-token"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["user"] == {"id": doctor_id, "name": "Dr Berg", "role": "doctor"}
        assert set_cookie_headers(response, "session_token") == []

        me = client.get(
            "/api/me", headers={**APP_HEADERS, "authorization": f"Bearer {body['token']}"}
        )
        assert me.status_code == 200
        assert me.json()["user"]["id"] == doctor_id

    def test_browser_client_rejected(self, client: TestClient):
        response = client.post(
            "/api/login", headers={"x-client": "web", "authorization": "Bearer doctor-id-token"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_client_type"

    def test_invalid_identity_token(self, client: TestClient):
        response = client.post(
            "/api/login", headers={**APP_HEADERS, "authorization": "Bearer forged"}
        )

        assert response.status_code == 401

    def test_missing_identity_token(self, client: TestClient):
        response = client.post("/api/login", headers=APP_HEADERS)

        assert response.status_code == 401
        assert response.json()["code"] == "missing_token"


class TestLogout:
    def test_clears_cookies(self, client: TestClient):
        browser_login(client)

        response = client.post("/api/logout")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Logged out successfully"}
        assert "max-age=0" in set_cookie_headers(response, "session_token")[0].lower()
        assert "max-age=0" in set_cookie_headers(response, "csrf_token")[0].lower()


def test_health(client: TestClient):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
