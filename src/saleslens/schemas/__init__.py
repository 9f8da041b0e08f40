"""Pydantic models shared by stores, services and the HTTP API."""
