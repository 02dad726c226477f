"""
WireGuard Mesh Manager - Web Interface

Read-only JSON status of the mesh, per-client configuration download and
the static frontend. Never touches the device or the reconcile loop.
"""
import logging
from pathlib import Path

from aiohttp import web

from config import ServerConfig
from database.repository import Repository
from errors import MeshError, UnknownClient
from renderer.wireguard import WireGuardRenderer

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", ServerConfig)
REPOSITORY_KEY = web.AppKey("repository", Repository)
RENDERER_KEY = web.AppKey("renderer", WireGuardRenderer)

routes = web.RouteTableDef()


async def client_config(config: ServerConfig, repository: Repository, renderer: WireGuardRenderer,
                        client: str, private_key: str = None) -> str:
    """Configuration text for `client`; raises UnknownClient."""
    await repository.get_client(client)
    connections = await repository.list_server_connections(client)
    return renderer.render_client_config(config, connections, private_key)


@routes.get("/data")
async def network_status(request):
    """Servers and clients of the whole mesh."""
    config = request.app[CONFIG_KEY]
    repository = request.app[REPOSITORY_KEY]

    servers = await repository.list_servers()
    clients = await repository.list_client_connections(None)
    return web.json_response({
        "servers": [
            {
                "name": s.name,
                "subnet": str(s.subnet_addr),
                "subnet_len": s.subnet_len,
                "address": str(s.address),
                "endpoint": str(s.public_address),
                "endpoint_port": s.public_port,
            }
            for s in servers
        ],
        "clients": [
            {"name": c.client.name, "server": c.server, "address": str(c.address)}
            for c in clients
        ],
        "base_domain": config.base_domain,
    })


@routes.get("/conf/{name}")
async def client_conf(request):
    """Generate the client configuration for a given username."""
    name = request.match_info["name"]
    try:
        conf = await client_config(
            request.app[CONFIG_KEY],
            request.app[REPOSITORY_KEY],
            request.app[RENDERER_KEY],
            name,
        )
    except UnknownClient as e:
        return web.Response(status=404, text=str(e))
    return web.Response(text=conf)


@routes.get("/{path:.*}")
async def static_file(request):
    """Any other file of the frontend, `/` being index.html."""
    static_dir = Path(request.app[CONFIG_KEY].web_static_dir).resolve()
    path = request.match_info["path"] or "index.html"
    target = (static_dir / path).resolve()

    if target.is_relative_to(static_dir) and target.is_file():
        logger.debug(f"Sending file {target}")
        return web.FileResponse(target)

    logger.warning(f"404 File Not Found: {request.path} -> {target}")
    raise web.HTTPNotFound()


@web.middleware
async def error_middleware(request, handler):
    """Database or data errors become a 500 with the reason logged."""
    try:
        return await handler(request)
    except MeshError as e:
        logger.error(f"{request.method} {request.path} failed: {e}")
        return web.json_response({"error": str(e)}, status=500)


def create_app(config: ServerConfig, repository: Repository, renderer: WireGuardRenderer = None) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app[CONFIG_KEY] = config
    app[REPOSITORY_KEY] = repository
    app[RENDERER_KEY] = renderer or WireGuardRenderer()
    app.add_routes(routes)
    return app


async def start_web_server(app: web.Application, host: str, port: int) -> web.AppRunner:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info(f"Web interface listening on http://{host}:{port}")
    return runner
