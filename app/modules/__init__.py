"""Workshop booking domain modules."""
