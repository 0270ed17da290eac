"""Pydantic schemas for the graph model and the HTTP API."""
