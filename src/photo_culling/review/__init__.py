"""Derived review views: duplicates, person groups and the filtered gallery."""
