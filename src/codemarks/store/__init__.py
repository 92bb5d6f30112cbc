"""Bookmark store: tree engine, JSON persistence and snapshot drift checks."""
