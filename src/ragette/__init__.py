"""Ragette — chat with an uploaded document through retrieval-augmented generation."""

__version__ = "0.1.0"
