"""Status server — FastAPI app and embedded uvicorn server."""

from pixgg_listener.api.app import create_app, render_status
from pixgg_listener.api.server import StatusServer, bind_socket, build_server

__all__ = ["StatusServer", "bind_socket", "build_server", "create_app", "render_status"]
