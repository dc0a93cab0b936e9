"""Per-entity API routers."""
