"""RDS utilities."""
