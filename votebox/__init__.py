"""Voting backend with LinkedIn login and single-vote enforcement."""
