"""Credentials domain layer."""
