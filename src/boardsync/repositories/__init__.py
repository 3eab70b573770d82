"""Collaborator interfaces."""

from .protocol import BoardApiProtocol

__all__ = ["BoardApiProtocol"]
