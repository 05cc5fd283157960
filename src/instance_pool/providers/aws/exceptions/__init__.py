"""AWS exceptions."""
