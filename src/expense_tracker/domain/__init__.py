"""Application domains."""
