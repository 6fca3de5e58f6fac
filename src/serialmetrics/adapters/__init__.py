"""Adapters connecting the core to transports, HTTP and logging."""
