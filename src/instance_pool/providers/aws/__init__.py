"""AWS EC2 and RDS control plane providers."""
