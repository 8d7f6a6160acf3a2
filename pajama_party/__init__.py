"""Pajama Party Platform: night-train dreams, community stats and the dream/reality map."""

__version__ = "0.1.0"
