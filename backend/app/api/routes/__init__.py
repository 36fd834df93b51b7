"""API routes."""

from app.api.routes import onboarding, sandbox

__all__ = ["onboarding", "sandbox"]
