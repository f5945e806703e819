"""Core modules for database, security, and request dependencies."""
