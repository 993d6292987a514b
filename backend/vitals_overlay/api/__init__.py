"""Couche API (FastAPI)."""
