"""Credentials infrastructure layer."""
