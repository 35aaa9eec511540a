"""Baustellen-Chat zu strukturierten Regie-/Bautagesberichten."""

__version__ = "0.1.0"
