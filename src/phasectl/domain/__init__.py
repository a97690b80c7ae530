"""Domain layer — object kinds, catalog models, rule documents, errors.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
