"""
Pydantic schema definitions for API payloads.

Each domain (users, resources, bookings, events, communities) defines
its own models for request and response bodies.  Schemas are kept
separate from the SQL in the service layer so that the API
representation does not leak storage details.
"""
