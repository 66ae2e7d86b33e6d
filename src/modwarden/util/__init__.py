"""
Utility functions and helpers for ModWarden.

- **logger.py**: Centralized logging configuration with colored console output
  and rotating file handlers. Uses prompt_toolkit for console output that does
  not interfere with the running event loop.

- **discord_utils.py**: Stateless Discord helpers: responding to interactions,
  reading command options, resolving members and posting to the audit log
  channel.

- **permissions.py**: Role matching, permission bits and role hierarchy checks
  used by the moderation commands.
"""
