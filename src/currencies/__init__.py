"""Currency groups and per-plan conversion rates."""
