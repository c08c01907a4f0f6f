"""Exception types shared by the engine, the D-Bus client and the store.

Everything derives from DispSwitchError so the command line can report all
expected failures with a single except clause.
"""

from __future__ import annotations


class DispSwitchError(Exception):
    """Base class for all dispswitch errors."""


class IdentityError(DispSwitchError):
    """Live state cannot be canonicalized.

    Raised when an output has zero or several modes flagged ``is-current``,
    or when a logical monitor references a display that is not in the
    snapshot's output list.
    """


class RetargetError(IdentityError):
    """A logical monitor lost every assignment while being retargeted."""


class ServiceUnavailable(DispSwitchError):
    """The DisplayConfig service could not be reached or rejected a call."""


class StoreError(DispSwitchError):
    """Reading or writing the saved configuration list failed."""
