"""Environment lifecycle and activation."""
