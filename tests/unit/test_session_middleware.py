"""
Unit tests for the session middleware and application wiring.

Tests drive a FastAPI app through TestClient with an in-memory store and
check that sessions persist across requests, that the session cookie is
rewritten before it leaves the process, and that save failures are
reported as structured 503 responses.
"""

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from config.settings import Settings
from errors.handlers import register_exception_handlers
from main import create_app
from middleware.session import SessionMiddleware, get_session, setup_session
from session.context import SessionContext
from session.manager import SessionLifecycleManager


def _build_app(context: SessionContext) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    setup_session(app, context)

    @app.post("/login")
    async def login(session: SessionLifecycleManager = Depends(get_session)):
        await session.start()
        await session.regenerate(delete_old=True)
        session.set("user_id", 42)
        return {"ok": True}

    @app.get("/me")
    async def me(session: SessionLifecycleManager = Depends(get_session)):
        await session.start()
        return {"user_id": session.get("user_id")}

    @app.get("/flash")
    async def flash(session: SessionLifecycleManager = Depends(get_session)):
        await session.start("strict")
        return {"flash": session.take("flash")}

    @app.post("/flash")
    async def set_flash(session: SessionLifecycleManager = Depends(get_session)):
        await session.start("strict")
        session.set("flash", "Saved!")
        return {"ok": True}

    @app.post("/logout")
    async def logout(session: SessionLifecycleManager = Depends(get_session)):
        await session.start()
        await session.destroy()
        return {"ok": True}

    @app.get("/stateless")
    async def stateless():
        return {"ok": True}

    @app.get("/extra-cookie")
    async def extra_cookie(request: Request):
        await request.state.session.start()
        response = JSONResponse({"ok": True})
        response.set_cookie("theme", "dark")
        return response

    return app


class TestSessionMiddleware:
    """Tests for SessionMiddleware behaviour across requests."""

    @pytest.fixture
    def client(self, session_context):
        return TestClient(_build_app(session_context))

    def test_new_session_sets_rewritten_cookie(self, client):
        response = client.get("/me")

        assert response.status_code == 200
        [cookie] = response.headers.get_list("set-cookie")
        assert cookie.startswith("session_id=")
        assert cookie.endswith("; Path=/; HttpOnly; SameSite=Lax")

    def test_session_persists_across_requests(self, client, memory_store):
        login = client.post("/login")
        assert login.status_code == 200

        response = client.get("/me")

        assert response.json() == {"user_id": 42}
        # Resumed from the cookie, so no new Set-Cookie is sent
        assert response.headers.get_list("set-cookie") == []
        assert len(memory_store.keys()) == 1

    def test_regenerate_on_login_drops_pre_login_session(self, client, memory_store):
        client.get("/me")
        pre_login_id = client.cookies.get("session_id")

        client.post("/login")

        assert client.cookies.get("session_id") != pre_login_id
        assert f"sessions:{pre_login_id}" not in memory_store.keys()

    def test_flash_is_read_once(self, client):
        client.post("/flash")

        assert client.get("/flash").json() == {"flash": "Saved!"}
        assert client.get("/flash").json() == {"flash": None}

    def test_requested_same_site_is_applied(self, client):
        response = client.post("/flash")

        [cookie] = response.headers.get_list("set-cookie")
        assert cookie.endswith("; SameSite=Strict")

    def test_logout_removes_session_from_store(self, client, memory_store):
        client.post("/login")
        assert len(memory_store.keys()) == 1

        client.post("/logout")

        assert memory_store.keys() == []
        assert client.get("/me").json() == {"user_id": None}

    def test_stateless_route_does_not_touch_session(self, client, memory_store):
        response = client.get("/stateless")

        assert response.headers.get_list("set-cookie") == []
        assert memory_store.keys() == []

    def test_other_cookies_are_untouched(self, client):
        response = client.get("/extra-cookie")

        cookies = response.headers.get_list("set-cookie")
        assert any(c.startswith("theme=dark") and "SameSite=lax" in c for c in cookies)
        assert any(c.startswith("session_id=") and c.endswith("SameSite=Lax") for c in cookies)

    def test_save_failure_returns_503(self, app_settings, failing_store):
        client = TestClient(_build_app(SessionContext(app_settings, store=failing_store)))

        response = client.get("/me")

        assert response.status_code == 503
        assert response.json()["error_code"] == "SESSION_STORE_UNAVAILABLE"

    def test_save_failure_can_be_tolerated(self, app_settings, failing_store):
        settings = app_settings.model_copy(update={"fail_request_on_save_error": False})
        client = TestClient(_build_app(SessionContext(settings, store=failing_store)))

        response = client.get("/me")

        assert response.status_code == 200
        assert response.json() == {"user_id": None}

    def test_auto_start(self, app_settings, memory_store):
        settings = app_settings.model_copy(update={"session_auto_start": True})
        client = TestClient(_build_app(SessionContext(settings, store=memory_store)))

        response = client.get("/stateless")

        assert len(response.headers.get_list("set-cookie")) == 1
        assert len(memory_store.keys()) == 1

    def test_route_error_wins_over_unsaveable_session(self, session_context, caplog):
        app = FastAPI()
        setup_session(app, session_context)

        @app.get("/")
        async def index(session: SessionLifecycleManager = Depends(get_session)):
            await session.start()
            session.set("handle", object())
            raise RuntimeError("route failed")

        with pytest.raises(RuntimeError, match="route failed"):
            TestClient(app).get("/")

        assert any(
            r.getMessage() == "Failed to save session after request error" and r.exc_info[0] is TypeError
            for r in caplog.records
        )

    def test_get_session_without_middleware_is_an_error(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/")
        async def index(session=Depends(get_session)):
            return {}

        response = TestClient(app).get("/")

        assert response.status_code == 500
        assert response.json()["error_code"] == "INVALID_SESSION_STATE"

    def test_middleware_class_can_be_added_directly(self, session_context):
        app = FastAPI()
        app.add_middleware(SessionMiddleware, context=session_context)

        @app.get("/")
        async def index(request: Request):
            await request.state.session.start()
            return {}

        response = TestClient(app).get("/")

        assert response.headers["set-cookie"].startswith("session_id=")


class TestCreateApp:
    """Tests for the application factory."""

    @pytest.fixture
    def settings(self):
        return Settings(_env_file=None, session_store_type="memory", session_gc_probability=0.0)

    def test_health_reports_store(self, settings):
        app = create_app(settings, configure_logging=False)

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["session_store"] == "InMemorySessionStore"

    def test_health_unhealthy_when_store_down(self, settings, failing_store):
        app = create_app(settings, store=failing_store, configure_logging=False)

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    def test_lifespan_connects_and_disconnects_store(self, settings, failing_store):
        app = create_app(settings, store=failing_store, configure_logging=False)

        with TestClient(app):
            failing_store.connect.assert_awaited_once()

        failing_store.disconnect.assert_awaited_once()
        assert app.state.session_context.initialized is False
