"""Data access layer behind the moderation coordinator."""
