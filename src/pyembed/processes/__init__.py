"""Child process execution."""
