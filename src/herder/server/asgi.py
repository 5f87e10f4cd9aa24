"""ASGI entry point for running the herder server via uvicorn CLI.

Used by `herder start --detach` to launch the server as a subprocess:
    python -m uvicorn herder.server.asgi:app --host ... --port ...

``HERDER_CONFIG`` selects a config file other than the default.
"""

from herder.config.loader import load_config
from herder.server.app import create_app

config = load_config()
app = create_app(config)
