"""Blueprint packages (one per API concern)."""
