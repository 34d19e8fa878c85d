"""Routes package for FastAPI endpoints.

This package contains all API and page route modules for FeedbackHub.
"""

from feedbackhub.routes import ai, forms, health, respond, results

__all__ = ["ai", "forms", "health", "respond", "results"]
