"""
Handler modules, grouped by kind.

Every module in ``commands``, ``events`` and ``interactions.*`` exposes
``setup(services)`` returning a handler object (or a list of them) with a
``key``, a ``kind`` and an async ``invoke(event)``. Modules whose names
start with an underscore are skipped.
"""
