"""Error taxonomy for orbit."""

from __future__ import annotations


class OrbitError(Exception):
    """Base class for every error that aborts an invocation."""


class ConfigurationError(OrbitError):
    """Raised for bad local configuration or call parameters, before any network call."""


class DerivationExhausted(OrbitError):
    """Raised when no bump seed yields an off-curve address."""


class RegistryUnavailable(OrbitError):
    """Raised when a registry account is missing or cannot be decoded."""


class UnsupportedOperation(OrbitError):
    """Raised for an unknown contract/method pair."""


class SubmissionError(OrbitError):
    """Raised when the cluster rejects a transaction."""
