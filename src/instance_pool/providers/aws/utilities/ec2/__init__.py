"""EC2 utilities."""
