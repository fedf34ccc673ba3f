"""Access application layer."""
