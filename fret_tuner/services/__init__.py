"""Concrete collaborators for the Fret Tuner core."""
