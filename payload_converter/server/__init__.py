"""HTTP conversion service (FastAPI)."""
