"""Errors raised by the dispute services."""


class DisputeError(Exception):
    """Base class for dispute engine errors."""


class RecordNotFound(DisputeError):
    """A required sala, dispute, account or wallet record is absent."""


class InvalidTransition(DisputeError):
    """The dispute or sala is not in a state that allows the operation."""


class NotAParty(DisputeError):
    """The user is neither the marca nor the socio of the sala."""
