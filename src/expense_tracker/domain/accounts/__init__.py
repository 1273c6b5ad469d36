"""Identity resolution for requests."""
