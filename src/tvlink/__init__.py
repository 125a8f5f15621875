"""tvlink - QR code based TV sign-in.

A TV shows a QR code for a backend pairing session, a signed-in phone
scans it and links its identity, and the TV picks up the issued
credential by polling.
"""

__version__ = "0.1.0"
