"""Expiry and retry policy."""

from domainscope.policy.classifier import Classification, Disposition, classify
from domainscope.policy.ttl import hint_for, is_stale, ttl_for

__all__ = [
    "Classification",
    "Disposition",
    "classify",
    "hint_for",
    "is_stale",
    "ttl_for",
]
