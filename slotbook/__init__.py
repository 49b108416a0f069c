"""Availability slots and race-free booking."""
