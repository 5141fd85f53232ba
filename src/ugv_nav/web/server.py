"""
Web server - aiohttp application for the debug interface.
"""

import logging

from aiohttp import web

from ugv_nav.config import WEB_HOST, WEB_PORT
from ugv_nav.decision import UnknownRegionError

logger = logging.getLogger(__name__)

INDEX_HTML = """<!DOCTYPE html>
<html>
<head><title>UGV Navigator</title></head>
<body>
    <h1>UGV Navigator Debug Interface</h1>
    <nav>
        <a href="/api/status">Status</a> |
        <a href="/api/worldstate">WorldState</a> |
        <a href="/api/params">Parameters</a>
    </nav>
    <p>POST /api/target {"target": "TL"} pins the goal, {"target": null} clears it.</p>
    <p>POST /api/stop holds the vehicle, POST /api/resume releases it.</p>
</body>
</html>
"""


class WebServer:
    """
    Debug web interface server.

    Provides:
    - Status page and JSON status
    - Latest WorldState
    - Runtime parameter tuning
    - Target override (drive without the oracle)
    - Stop / resume
    """

    def __init__(self, controller=None):
        """
        Args:
            controller: Optional Controller instance for live data
        """
        self.controller = controller
        self.app = web.Application()
        self._setup_routes()

    def _setup_routes(self):
        """Configure routes."""
        self.app.router.add_get("/", self.index)

        self.app.router.add_get("/api/status", self.api_status)
        self.app.router.add_get("/api/worldstate", self.api_worldstate)

        self.app.router.add_get("/api/params", self.api_params_get)
        self.app.router.add_post("/api/params", self.api_params_set)

        self.app.router.add_post("/api/target", self.api_target)

        self.app.router.add_post("/api/stop", self.api_stop)
        self.app.router.add_post("/api/resume", self.api_resume)

    async def index(self, request):
        """Landing page linking the JSON endpoints."""
        return web.Response(text=INDEX_HTML, content_type="text/html")

    async def api_status(self, request):
        """Get current navigation status."""
        status = {
            "state": "unknown",
            "misses": 0,
            "target": None,
            "override": False,
            "hold": False,
            "command": {"speed": 0.0, "flip": False},
            "sent": 0,
            "failures": 0,
            "last_seen": None,
        }

        if self.controller:
            c = self.controller
            goal = c.resolver.goal
            status["state"] = c.state_machine.state.name
            status["misses"] = c.state_machine.misses
            status["override"] = c.resolver.override is not None
            status["hold"] = c.hold
            status["command"] = c.command.to_json()
            last = c.fusion.last_pose
            if last is not None:
                status["last_seen"] = {"x": round(last.x, 4), "y": round(last.y, 4)}
            if goal is not None:
                status["target"] = {"region": goal.region.name, "point": list(goal.point)}
            if c.dispatcher:
                status["sent"] = c.dispatcher.sent
                status["failures"] = c.dispatcher.failures

        return web.json_response(status)

    async def api_worldstate(self, request):
        """Latest perception snapshot."""
        world = self.controller.world_state if self.controller else None
        if world is None:
            return web.json_response({"error": "No data yet"}, status=404)
        return web.json_response(world.to_dict())

    async def api_params_get(self, request):
        """GET /api/params - Current runtime parameters."""
        if not self.controller:
            return web.json_response({"error": "Parameters not available"}, status=404)
        return web.json_response(self.controller.params.to_dict())

    async def api_params_set(self, request):
        """POST /api/params - Update parameters. Pass _save=true to persist."""
        if not self.controller:
            return web.json_response({"error": "Parameters not available"}, status=404)

        data = await request.json()
        save = data.pop("_save", False)
        self.controller.params.update(**data)

        if save:
            self.controller.params.save()

        return web.json_response(self.controller.params.to_dict())

    async def api_target(self, request):
        """POST /api/target - {"target": "TL"} pins the goal, null clears."""
        if not self.controller:
            return web.json_response({"error": "Controller not available"}, status=404)

        data = await request.json()
        target = data.get("target")
        resolver = self.controller.resolver

        if target is None:
            resolver.clear_override()
            logger.info("Target override cleared, following oracle")
            return web.json_response({"ok": True, "override": None})

        try:
            goal = resolver.set_override(str(target))
        except UnknownRegionError as e:
            return web.json_response({"error": str(e)}, status=400)

        return web.json_response({
            "ok": True,
            "override": goal.region.name,
            "point": list(goal.point),
        })

    async def api_stop(self, request):
        """POST /api/stop - Hold the vehicle until resumed."""
        if not self.controller:
            return web.json_response({"error": "Controller not available"}, status=404)
        self.controller.hold = True
        logger.warning("Hold requested from web")
        return web.json_response({"ok": True, "hold": True})

    async def api_resume(self, request):
        """POST /api/resume - Release a hold."""
        if not self.controller:
            return web.json_response({"error": "Controller not available"}, status=404)
        self.controller.hold = False
        logger.info("Hold released from web")
        return web.json_response({"ok": True, "hold": False})


def create_app(controller=None) -> web.Application:
    """Create the web application."""
    server = WebServer(controller)
    return server.app


async def run_server(controller=None, host=WEB_HOST, port=WEB_PORT):
    """Run the web server."""
    app = create_app(controller)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"Web server running at http://{host}:{port}")
    return runner
