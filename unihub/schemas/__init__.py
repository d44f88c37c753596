"""
Schemas module - Request/Response schemas for API endpoints.

Stored documents are plain dicts (see unihub.services); these models are
the API contract only.
"""
