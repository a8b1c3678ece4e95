"""Evaluators that turn a loaded verification context into scores and flags.

- credibility: six sub-scores and the weighted aggregate
- crossref: duplicates and corroboration
- hoax: scam patterns and spam heuristics
- triage: decision table and rules
"""
