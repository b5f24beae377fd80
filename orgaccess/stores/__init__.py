"""
Persistence helpers for the access-control core.

Store functions flush or execute against the caller's session but never
commit; the workflows own transaction boundaries.
"""
