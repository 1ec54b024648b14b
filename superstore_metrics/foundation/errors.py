"""Exceptions raised by the Superstore metrics foundation layer."""

from __future__ import annotations


class InvalidRangeError(ValueError):
    """A date range whose end precedes its start."""


class InvariantViolationError(ValueError):
    """An order line or fact table breaks a data-model invariant.

    Malformed rows should be rejected by the loader; this error is the
    fail-fast guard when one slips through.
    """
