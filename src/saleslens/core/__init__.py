"""Core primitives: errors, id generation, clock, slug derivation."""
