"""Async client and per-user session for the PartyFinder API."""
from partyfinder.client.api import PartyFinderClient
from partyfinder.client.session import ViewerSession

__all__ = ["PartyFinderClient", "ViewerSession"]
