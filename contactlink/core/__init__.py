"""Core utilities: errors, request context, locking."""
