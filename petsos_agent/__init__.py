"""
PetSOS schedule agent: availability intake for on-call veterinarians.
"""

__version__ = "1.0.0"
