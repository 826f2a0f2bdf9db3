"""Persönlicher Kalender mit wiederkehrenden Terminen."""

__version__ = "0.1.0"
