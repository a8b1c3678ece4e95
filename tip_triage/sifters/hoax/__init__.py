"""Hoax and scam pattern matching."""

from tip_triage.sifters.hoax.hoax_matcher import HoaxMatcher, HoaxResult

__all__ = ["HoaxMatcher", "HoaxResult"]
