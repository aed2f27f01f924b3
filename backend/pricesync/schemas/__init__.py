# backend/pricesync/schemas/__init__.py
"""Pydantic request/response schemas for the HTTP API."""
