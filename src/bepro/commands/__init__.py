"""
Commands - CLI command implementations.

- init:  Create a local wallet key
- token: ERC-20 queries and transfers
"""
