"""Subcommand registrations for ``main.py``."""
