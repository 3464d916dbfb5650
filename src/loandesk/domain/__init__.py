"""Domain layer — books, loans, fines, and the rules that bind them.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
