"""ASGI entrypoint for the tool catalog API."""

from tool_catalog.api.app import create_app
from tool_catalog.containers import build_container

app = create_app(build_container())
