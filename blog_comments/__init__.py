"""Blog comment intake and moderation service."""
