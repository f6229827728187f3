"""
exceptions.py - Error taxonomy for linkage evaluation and plate layering.

InfeasibleConfiguration is expected during animation and editing and is
always recovered locally. The others indicate caller errors, except
NoLayeringSolution which is reported to the user.
"""
from __future__ import annotations


class LinkageError(Exception):
    """Base class for all linkage errors."""


class InfeasibleConfiguration(LinkageError):
    """The linkage cannot be assembled at the requested drive angle."""

    def __init__(self, message: str, joint_index: int | None = None):
        super().__init__(message)
        self.joint_index = joint_index


class UnknownPointReference(LinkageError, KeyError):
    """A mutation targeted a point or link that does not exist."""

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the plain message
        return str(self.args[0]) if self.args else ''


class MalformedLinkage(LinkageError, ValueError):
    """A joint references a name that is not defined before it."""


class NoLayeringSolution(LinkageError):
    """The plane search found no assignment satisfying every constraint."""
