"""
Nonce-addressed stake ledger with registry-signed releases and BLS governance.
"""

__version__ = "0.1.0"
