"""Shared FastAPI dependencies for route modules.

Services that live for the whole application (feed, AI client, template
loader, guards) are created in the lifespan and stored on app.state; the
per-request repositories wrap the request's database session.
"""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from feedbackhub.models.database import get_db
from feedbackhub.services.ai_client import AIClient
from feedbackhub.services.guards import InFlightGuard
from feedbackhub.services.repository import FormRepository, ResponseFeed, ResponseRepository
from feedbackhub.services.template_loader import FormTemplateLoader


def get_response_feed(request: Request) -> ResponseFeed:
    return request.app.state.response_feed


def get_form_repository(db: Session = Depends(get_db)) -> FormRepository:
    return FormRepository(db)


def get_response_repository(
    db: Session = Depends(get_db),
    feed: ResponseFeed = Depends(get_response_feed),
) -> ResponseRepository:
    return ResponseRepository(db, feed=feed)


def get_ai_client(request: Request) -> Optional[AIClient]:
    """Configured AI client, or None when AI features are disabled."""
    return request.app.state.ai_client


def get_template_loader(request: Request) -> FormTemplateLoader:
    return request.app.state.template_loader


def get_request_guard(request: Request) -> InFlightGuard:
    """Application-wide guard for submissions and AI requests in flight."""
    return request.app.state.request_guard
