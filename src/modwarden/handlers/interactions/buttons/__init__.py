"""Button handlers, keyed by component custom id."""
