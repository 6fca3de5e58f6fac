"""Web framework adapters for the exposition endpoint."""
