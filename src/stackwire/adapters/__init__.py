"""Adapters implementing the domain service ports."""
