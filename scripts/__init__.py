"""
Scripts for DoseTrack
Seeding and the scheduled missed-dose sweep
"""

from .seed_data import seed_all, create_tables

__all__ = [
    "seed_all",
    "create_tables"
]
