"""Domain logic."""
