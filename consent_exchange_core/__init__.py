"""
Consent exchange core.

Consent-gated access to provider data items protected by envelope
encryption, plus the admin-gated promotion of signups into active accounts.
"""

__version__ = "0.1.0"
