"""Adapters implementing application ports against real backends."""
