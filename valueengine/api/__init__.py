"""API package for the value engine."""
