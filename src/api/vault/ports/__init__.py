"""Ports for the vault bounded context."""
