"""Response handling."""
