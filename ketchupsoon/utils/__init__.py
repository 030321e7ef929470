"""Utilities: Kuzu connection management, caching, search, phone numbers, calendar export, imports and settings."""
