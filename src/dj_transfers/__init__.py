"""
dj_transfers: funds transfers with fixed fees and an append-only ledger.
"""

__version__ = "0.1.0"
