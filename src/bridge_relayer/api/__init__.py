"""API — FastAPI application and HTTP routes."""
