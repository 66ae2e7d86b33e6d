"""
ModWarden: a Discord moderation bot.

Slash commands, component interactions and gateway events are routed
through a handler registry to small handler modules. Moderation actions are
recorded in a SQLite infraction ledger.
"""
