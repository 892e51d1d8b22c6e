"""HTTP middleware for the Moderation Gateway."""
