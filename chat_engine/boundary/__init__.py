"""Database and HTTP boundary adapters."""
