"""Schemas package - Pydantic request/response models."""
