"""
Database Package for FileVault.

This package holds the catalog: the durable record store for file metadata
and caller identities.
- Model definitions using SQLAlchemy ORM
- Engine and session construction
- The Catalog class wrapping every query the service performs
"""
