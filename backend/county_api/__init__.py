"""
County Directory Backend: Application Package
==============================================

What: Marks the `county_api` directory as a Python package.
Who:  Imported by uvicorn (`county_api.main:app`), Alembic and pytest.

Architecture Note:
    The backend keeps the usual layered split:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP parsing, envelopes
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← validation, decoding, uniqueness
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes never touch the ORM directly; services never build HTTP responses.
"""

__version__ = "1.0.0"
