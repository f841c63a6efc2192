"""Persistence operations for products."""
