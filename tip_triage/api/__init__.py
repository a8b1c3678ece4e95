"""HTTP surface for the tip verification engine."""

from tip_triage.api.routes import create_app, router

__all__ = ["create_app", "router"]
