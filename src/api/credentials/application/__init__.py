"""Credentials application layer."""
