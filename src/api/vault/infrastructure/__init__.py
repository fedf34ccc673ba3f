"""Vault infrastructure layer."""
