"""Core infrastructure: configuration, logging, HTTP clients, health tracking."""
