"""
API Package for FileVault.

Routers for the file endpoints and the health check.
"""
