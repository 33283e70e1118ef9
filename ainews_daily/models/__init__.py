"""Local inference capabilities."""
