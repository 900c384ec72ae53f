"""Guess the Killer: live suspect voting with timed scoring."""
