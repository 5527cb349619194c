"""Tic-tac-toe with an automated opponent that plays perfectly or adapts to one player's habits."""

__version__ = "1.0.0"
