"""
Pocketbook Backend — Application Package Initializer
=====================================================

What: Marks the `pocketbook` directory as a Python package.
Who:  Used by the import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Interactor (Business Sequencing)  │  ← ordering, partial-failure policy
    ├──────────────────┬──────────────────┤
    │ SessionAuthent.  │ PayloadStrategy  │  ← sessions / image payload location
    ├──────────────────┴──────────────────┤
    │   Storage Adapter │ Blob Adapter    │  ← relational rows / binary payloads
    └─────────────────────────────────────┘

    The interactor is the only component that knows about all the others.
    Routes never talk to a store directly.
"""

__version__ = "1.0.0"
