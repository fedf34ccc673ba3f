"""Access bounded context.

Gates programmatic API requests: credential validation, monthly quotas,
sliding-window rate limits and per-request usage recording.
"""
