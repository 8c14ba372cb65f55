"""BarterGuard: moderation and trust scoring for a barter marketplace."""

__version__ = "0.1.0"
