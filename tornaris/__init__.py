"""Tornaris session engine.

Tracks player resources, the day/night event timeline, monster encounters,
duels and the closing single-elimination tournament for one table session.
"""

__version__ = "0.1.0"
