"""
Catalog API Package

CRUD HTTP API for product records backed by a relational table.
"""
