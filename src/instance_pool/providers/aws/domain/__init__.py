"""EC2 and RDS domain vocabularies."""
