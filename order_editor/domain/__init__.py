"""
Domain layer for the order editor.

Immutable business entities and value objects. Every edit produces a new
instance; nothing here performs I/O.
"""
