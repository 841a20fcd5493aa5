from __future__ import annotations


class RealtimeError(Exception):
    """Base class for realtime engine errors."""


class CredentialResolutionError(RealtimeError):
    """The participant store failed while resolving an anonymous token."""
