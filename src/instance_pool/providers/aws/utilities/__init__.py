"""AWS utilities."""
