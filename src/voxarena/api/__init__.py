"""VoxArena HTTP API (FastAPI)."""
