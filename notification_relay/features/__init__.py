"""Domain features of the relay."""
