"""
Handler registry and dispatcher.

- **handler_registry.py**: Discovers handler modules per kind and keeps a
  ``(kind, key) -> handler`` table.
- **dispatcher.py**: Routes classified events to their handler, isolating
  handler failures from the caller.
"""
