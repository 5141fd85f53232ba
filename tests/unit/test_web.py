"""
Unit tests for the debug web API
"""

import asyncio

import pytest
from aiohttp import test_utils

from ugv_nav.control import Controller
from ugv_nav.decision import Region
from ugv_nav.web import create_app


@pytest.fixture
def controller(params):
    return Controller(params, detector=object())


def call(app, method, path, **kwargs):
    """Run one request against app; returns (status, json body)."""

    async def go():
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            resp = await client.request(method, path, **kwargs)
            return resp.status, await resp.json()

    return asyncio.run(go())


class TestStatus:
    """Test read-only endpoints"""

    def test_status(self, controller):
        status, body = call(create_app(controller), "GET", "/api/status")
        assert status == 200
        assert body["state"] == "SEARCHING"
        assert body["target"] is None
        assert body["command"] == {"speed": 0.0, "flip": False}

    def test_status_without_controller(self):
        status, body = call(create_app(), "GET", "/api/status")
        assert status == 200
        assert body["state"] == "unknown"

    def test_worldstate_before_first_tick(self, controller):
        status, _ = call(create_app(controller), "GET", "/api/worldstate")
        assert status == 404

    def test_worldstate(self, controller, scene):
        controller.process({"camera1": scene.frame("camera1", 0.3, 0.3)})
        status, body = call(create_app(controller), "GET", "/api/worldstate")
        assert status == 200
        assert body["pose"]["x"] == pytest.approx(0.3, abs=1e-3)

    def test_params_masked(self, controller):
        status, body = call(create_app(controller), "GET", "/api/params")
        assert status == 200
        assert body["car_auth"] == "***"
        assert body["angle_ok"] == 0.5


class TestControl:
    """Test endpoints that change behaviour"""

    def test_set_params(self, controller):
        status, body = call(
            create_app(controller), "POST", "/api/params",
            json={"angle_ok": 0.3, "car_auth": "***"},
        )
        assert status == 200
        assert controller.params.angle_ok == 0.3
        assert controller.params.car_auth == "car-token"

    def test_target_override(self, controller):
        status, body = call(create_app(controller), "POST", "/api/target", json={"target": "tl"})
        assert status == 200
        assert body["override"] == "TOP_LEFT"
        assert controller.resolver.goal.region == Region.TOP_LEFT
        assert controller.resolver.override == Region.TOP_LEFT

    def test_target_unknown(self, controller):
        status, body = call(create_app(controller), "POST", "/api/target", json={"target": "Q7"})
        assert status == 400
        assert "unknown region" in body["error"]
        assert controller.resolver.goal is None

    def test_target_cleared(self, controller):
        controller.resolver.set_override("BR")
        status, body = call(create_app(controller), "POST", "/api/target", json={"target": None})
        assert status == 200
        assert controller.resolver.override is None
        assert controller.resolver.goal.region == Region.BOTTOM_RIGHT

    def test_stop_and_resume(self, controller, scene):
        call(create_app(controller), "POST", "/api/stop")
        assert controller.hold
        controller.resolver.set_override("BR")
        controller.process({"camera1": scene.frame("camera1", 0.2, 0.2, 0.785)})
        assert controller.command.is_stop

        status, body = call(create_app(controller), "POST", "/api/resume")
        assert status == 200
        assert body["hold"] is False
        assert not controller.hold


class TestIndex:
    """Test the landing page"""

    def test_links_endpoints(self, controller):
        async def go():
            async with test_utils.TestClient(test_utils.TestServer(create_app(controller))) as client:
                resp = await client.get("/")
                return resp.status, resp.content_type, await resp.text()

        status, content_type, html = asyncio.run(go())
        assert status == 200
        assert content_type == "text/html"
        assert 'href="/api/status"' in html
        assert "not found" not in html

    def test_status_reports_last_sighting(self, controller, scene):
        controller.process({"camera1": scene.frame("camera1", 0.3, 0.6)})
        controller.process({"camera1": scene.frame("camera1")})
        status, body = call(create_app(controller), "GET", "/api/status")
        assert status == 200
        assert body["last_seen"] == {"x": pytest.approx(0.3, abs=1e-3), "y": pytest.approx(0.6, abs=1e-3)}
