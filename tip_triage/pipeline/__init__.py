"""Tip verification pipeline.

Usage:
    from tip_triage.pipeline import VerificationPipeline

    pipeline = VerificationPipeline.from_repository(repo)
    outcome = await pipeline.verify("tip-001")
"""

from tip_triage.pipeline.context_loader import ContextLoader
from tip_triage.pipeline.enrichment import Enrichment, ResultEnricher
from tip_triage.pipeline.verification_pipeline import VerificationOutcome, VerificationPipeline

__all__ = [
    "ContextLoader",
    "Enrichment",
    "ResultEnricher",
    "VerificationOutcome",
    "VerificationPipeline",
]
