"""Runtime distribution, layout and bootstrap."""
