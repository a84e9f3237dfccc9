"""CLI module for xdportal."""
