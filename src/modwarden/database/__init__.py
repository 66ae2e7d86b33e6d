"""
Database package for ModWarden.

Provides the infraction ledger on top of a single aiosqlite connection with
serialized writes and query timing.

Public API:
    - Database: Opens the connection, creates the schema and owns the store
    - InfractionStore: Append-only infraction ledger
    - InfractionStoreError: Raised when the ledger cannot be read or written
"""
