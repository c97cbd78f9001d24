"""merkle CLI package."""
