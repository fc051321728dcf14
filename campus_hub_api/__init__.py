"""
Top-level package for the Campus Hub API.

All functionality lives in submodules under ``app``; import the ASGI
application as ``campus_hub_api.app.main:app``.
"""

__all__ = []
