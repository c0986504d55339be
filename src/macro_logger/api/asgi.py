"""ASGI entrypoint for the macro logger token proxy."""

from macro_logger.api.app import create_app
from macro_logger.containers import build_container

app = create_app(build_container())
