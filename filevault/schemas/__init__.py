"""
Schemas Package for FileVault.

This package contains Pydantic models used for:
- Domain records passed between the catalog, the services and the API
- Response serialization (JSON envelopes)
"""
