"""Persistence for the ``users`` table."""
