"""Service layer for the moderation appeal workflow."""
