"""Package specifiers and hardware detection."""
