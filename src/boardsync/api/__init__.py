"""Board API client."""

from .client import BoardApiClient, remote_call_for

__all__ = ["BoardApiClient", "remote_call_for"]
