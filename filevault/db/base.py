"""
SQLAlchemy Base Definition Module.

This module defines the SQLAlchemy declarative base that the catalog models
inherit from. Table creation goes through ``Base.metadata``.
"""

from sqlalchemy.orm import declarative_base, registry

# Create a new SQLAlchemy mapper registry
mapper_registry = registry()

# Create the base class for declarative class definitions
Base = declarative_base(metadata=mapper_registry.metadata)
