"""Ports for the credentials bounded context."""
