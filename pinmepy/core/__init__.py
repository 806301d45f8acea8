"""Core components of pinmepy."""
