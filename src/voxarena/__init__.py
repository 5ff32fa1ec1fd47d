"""VoxArena - staged multi-persona debate sessions, personas, and taxonomy."""

__version__ = "0.4.0"
