"""Pairing module for tvlink.

Provides QR code pairing functionality including:
- Session id generation and payload codec
- QR code rendering
- Backend session store client
- TV and phone state machines
"""

from .client import PairingSessionClient
from .codec import SessionCodec
from .mobile_link import (
    Identity,
    IdentityProvider,
    MobileLinkSnapshot,
    MobileLinkState,
    MobileLinkStateMachine,
    StaticIdentityProvider,
)
from .qr_generator import QrGenerator
from .session import AuthStatus, LinkResult, PairingSession
from .state import StateHolder
from .tv_pairing import TvPairingSnapshot, TvPairingState, TvPairingStateMachine

__all__ = [
    "AuthStatus",
    "Identity",
    "IdentityProvider",
    "LinkResult",
    "MobileLinkSnapshot",
    "MobileLinkState",
    "MobileLinkStateMachine",
    "PairingSession",
    "PairingSessionClient",
    "QrGenerator",
    "SessionCodec",
    "StateHolder",
    "StaticIdentityProvider",
    "TvPairingSnapshot",
    "TvPairingState",
    "TvPairingStateMachine",
]
