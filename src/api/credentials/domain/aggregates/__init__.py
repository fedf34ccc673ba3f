"""Aggregates for the credentials domain."""

from credentials.domain.aggregates.api_key import APIKey

__all__ = ["APIKey"]
