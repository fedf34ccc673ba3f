"""Audit bounded context.

Records security-relevant events asynchronously in batches and serves
read-side queries and reports over the persisted trail.
"""
