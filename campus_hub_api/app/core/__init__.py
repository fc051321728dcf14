"""
Cross-cutting infrastructure: settings, logging, the SQLite layer, the
role model and the authorization guard.
"""
