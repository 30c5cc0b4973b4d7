"""Companies and their users."""
