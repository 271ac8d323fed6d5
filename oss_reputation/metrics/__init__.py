"""Pure scoring functions for repositories and contributors."""
