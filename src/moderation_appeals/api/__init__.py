"""HTTP API for the moderation appeals service."""
