"""Pydantic request and response schemas for the SGP-RP API."""
