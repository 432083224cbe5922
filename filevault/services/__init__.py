"""
Services Package for FileVault.

This package holds the business logic that sits between the API and storage:
- Id allocation
- File upload / download / list / delete orchestration
- Reconciliation of the catalog and the blob store
"""
