"""Fret Tuner - pitch computation and settings synchronization for a guitar tuner."""

__version__ = "0.1.0"
