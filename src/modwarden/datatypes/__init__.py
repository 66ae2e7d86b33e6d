"""
Shared data types: infraction records, handler registration entries and
command result records.
"""
