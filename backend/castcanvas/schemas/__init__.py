"""API Schemas — Pydantic request models for the canvas endpoints."""
