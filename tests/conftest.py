"""
Shared fixtures. Network-facing code is exercised against an in-process
aiohttp server bound to 127.0.0.1, which the registry maps to the mock platform.
"""

import io
from dataclasses import replace

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from PIL import Image

from stockprompt.config import AppConfig


@pytest.fixture
def config():
    """Defaults with short timeouts so failing tests fail fast."""
    return replace(
        AppConfig(),
        request_timeout=5.0,
        image_timeout=5.0,
        provider_timeout=5.0,
        validation_timeout=5.0,
    )


@pytest.fixture
async def serve():
    """
    Start a throwaway HTTP server from ``{(method, path): handler}``.
    Returns the running TestServer; all servers are closed on teardown.
    """
    servers = []

    async def _serve(routes):
        app = web.Application()
        for (method, path), handler in routes.items():
            app.router.add_route(method, path, handler)
        server = TestServer(app, host="127.0.0.1")
        await server.start_server()
        servers.append(server)
        return server

    yield _serve

    for server in servers:
        await server.close()


def base_url(server) -> str:
    return f"http://{server.host}:{server.port}"


def make_image(width, height, mode="RGB", fmt="PNG") -> bytes:
    color = (200, 80, 40, 255) if mode == "RGBA" else (200, 80, 40)
    buf = io.BytesIO()
    Image.new(mode, (width, height), color[: len(mode)]).save(buf, format=fmt)
    return buf.getvalue()


def respond_with(body: bytes, content_type: str = "image/png"):
    async def handler(request):
        return web.Response(body=body, content_type=content_type)

    return handler
