"""Domain layer for instance pool provisioning."""
