"""Core domain: frame protocol, label syntax, configuration and registry."""
