"""VoxArena ASGI entry point (``uvicorn voxarena.app:app``)."""

from voxarena.api.main import create_app

app = create_app()
