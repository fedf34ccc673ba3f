"""SQLAlchemy models for the access bounded context."""

from access.infrastructure.models.api_usage import APIUsageModel
from access.infrastructure.models.quota import QuotaUsageReceiptModel, QuotaWindowModel

__all__ = ["APIUsageModel", "QuotaUsageReceiptModel", "QuotaWindowModel"]
