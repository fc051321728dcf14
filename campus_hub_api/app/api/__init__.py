"""
Versioned HTTP routes.

Each API version is a subpackage (currently only ``v1``) exposing a
top-level ``router`` that ``main.create_app`` mounts under its prefix.
"""
