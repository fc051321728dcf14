"""
Application package initializer.

Each domain (users, resources, bookings, events, communities,
notifications) has a service in ``services`` and a router in
``api/v1/endpoints``.  Role checks live in ``core.roles`` and are
applied to routes through ``core.security.require_permission``.
"""

from .main import app  # noqa: F401
