"""Core infrastructure: database, errors, logging, permissions and jobs."""
