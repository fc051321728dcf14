"""
Service layer.

Each service encapsulates the SQL and business rules for one domain
and raises plain Python exceptions (``ValueError``, ``LookupError``,
``PermissionError``) that the API handlers translate to HTTP errors.
"""
