"""
Think Tank planning engine

Pure data transformations behind the virtual aquarium planner: species
normalization, compatibility checks, environmental recommendations, tank
snapshots and occupant mutations, plus the debounced persistence that keeps
a tank session in sync with its backing store.

Architecture: the session is the source of truth. Screens and stores are
collaborators.
"""

__version__ = "0.1.0"
