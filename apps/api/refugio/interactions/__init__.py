from refugio.interactions.backends import (
    InteractionBackend,
    LocalInteractionBackend,
    RemoteInteractionBackend,
)
from refugio.interactions.service import InteractionService

__all__ = [
    "InteractionBackend",
    "LocalInteractionBackend",
    "RemoteInteractionBackend",
    "InteractionService",
]
