"""Ports for the access bounded context."""
