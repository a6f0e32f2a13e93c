"""Background jobs owned by the process."""
