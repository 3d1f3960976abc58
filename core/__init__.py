"""Core domain logic for topic schema administration."""
