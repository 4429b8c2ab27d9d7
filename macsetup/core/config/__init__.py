"""Profile discovery and loading."""
