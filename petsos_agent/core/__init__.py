"""
Core domain types for the PetSOS schedule agent.
"""
