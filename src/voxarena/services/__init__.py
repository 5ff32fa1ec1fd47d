"""VoxArena service layer: debates, personas, taxonomy."""
