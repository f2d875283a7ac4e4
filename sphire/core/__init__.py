"""Core infrastructure: configuration, database, cache, security."""
