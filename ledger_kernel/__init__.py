"""
Ledger Kernel - multi-currency ledger consistency engine.

Account balances are never stored. They are projected from an append-style
log of onboard, transfer and swap records with:
- Exact decimal USD-pivot conversion
- Atomic append (including auto-onboarding of destinations)
- Per-account serialization of check-then-act sequences
- Guarded retraction of the most recent record only
"""

__version__ = "0.1.0"
