"""Scenarios for generating realistic plaza billing data sets."""

from plaza_billing.scenarios.plaza_cycle import PlazaBillingScenario

__all__ = ["PlazaBillingScenario"]
