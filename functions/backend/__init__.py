"""
FastAPI service for the studio admin dashboard and public site.

Wraps the document store and Cloud Storage behind small abstractions so the
same service code runs against Firebase or the in-memory twins used in tests.
"""
