"""Domain layer — protocol types, subject grammar, permission rules.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
