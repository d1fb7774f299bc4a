"""Custom exception hierarchy for plaza-billing."""


class PlazaBillingError(Exception):
    """Base exception for all plaza-billing errors."""


class InvalidConfigurationError(PlazaBillingError):
    """Raised when a recurring obligation is malformed.

    Covers unrecognized frequencies and statuses outside the known set.
    """


class InvalidInputError(PlazaBillingError):
    """Raised when bill inputs are invalid (negative amounts, missing dates)."""


class EntityNotFoundError(PlazaBillingError):
    """Raised when a referenced entity does not exist."""


class DuplicateOccurrenceError(PlazaBillingError):
    """Raised when a bill already exists for the same obligation and period."""


class ResolutionGapError(PlazaBillingError):
    """Raised when business metadata cannot be resolved.

    Never fatal for document generation: the composer degrades to
    placeholder text.
    """


class PersistenceError(PlazaBillingError):
    """Raised when the persistence collaborator fails."""


class ConfigurationError(PlazaBillingError):
    """Raised when environment configuration is invalid or missing."""


class SinkError(PlazaBillingError):
    """Raised when a sink operation fails."""
