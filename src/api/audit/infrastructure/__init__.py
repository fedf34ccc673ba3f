"""Audit infrastructure layer."""
