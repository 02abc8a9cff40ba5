"""
Todo core REST API package

Use ``api.app`` as ASGI application, e.g. ``uvicorn todo_core.api:api.app``.
"""

from .api import api, create_app
