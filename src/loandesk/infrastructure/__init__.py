"""Infrastructure layer — SQLite persistence via SQLAlchemy Core.

The service layer bridges between domain models and infrastructure.
"""
