"""Course recommendation and learning path planning service."""
