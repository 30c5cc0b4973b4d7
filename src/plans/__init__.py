"""Plans and plan types."""
