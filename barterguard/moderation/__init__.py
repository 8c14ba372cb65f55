"""Moderation layer for the barter marketplace.

This package provides:
- Classifier: keyword and spam-pattern checks on titles, descriptions and messages
- Counters: per-user report and rolling spam-incident tallies
- Coordinator: flags content, rejects policy violations, issues auto-bans
"""
