"""Sphire store API."""
