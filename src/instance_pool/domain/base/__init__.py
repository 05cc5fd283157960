"""Domain base package."""
