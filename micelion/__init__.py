"""Micelion: learning plans generated by a language model."""

__version__ = "0.1.0"
