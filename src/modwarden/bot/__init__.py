"""Discord client wiring: interaction classification and the client subclass."""
