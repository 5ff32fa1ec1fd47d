"""VoxArena API route modules."""
