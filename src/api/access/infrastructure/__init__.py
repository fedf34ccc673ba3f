"""Access infrastructure layer."""
