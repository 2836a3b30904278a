"""Spotlight API: accounts, sessions and realtime chat."""
