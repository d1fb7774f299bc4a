"""Persistence and lookup collaborators."""

from plaza_billing.store.base import BillingStore
from plaza_billing.store.identity import DirectoryResolver, IdentityResolver
from plaza_billing.store.memory import InMemoryBillingStore

__all__ = ["BillingStore", "DirectoryResolver", "IdentityResolver", "InMemoryBillingStore"]
