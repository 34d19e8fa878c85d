"""HTML rendering service using Jinja2.

This module renders the public respond pages from the templates shipped in
``feedbackhub/templates``. Templates are rendered with StrictUndefined to
catch missing variables early and with autoescaping, since labels and
answers are user-supplied.
"""

from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from feedbackhub.services.form_renderer import FormSession
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"


class TemplateRenderError(Exception):
    """Raised when template rendering fails."""
    pass


class TemplateRenderer:
    """Service for rendering Jinja2 page templates."""

    def __init__(self, templates_dir: Path = TEMPLATES_DIR):
        """Initialize Jinja2 environment with strict settings."""
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=True,  # Escape HTML for security
            undefined=StrictUndefined,  # Raise error on undefined variables
        )

    def render(self, template_name: str, context: dict) -> str:
        """Render a template file with context variables.

        Args:
            template_name: Template filename (e.g., "respond.html")
            context: Dictionary of variables for template

        Returns:
            Rendered HTML

        Raises:
            TemplateRenderError: If the template is invalid or variables are missing
        """
        try:
            template = self.env.get_template(template_name)
            return template.render(context)
        except TemplateError as e:
            logger.error(f"Template rendering error in {template_name}: {e}")
            raise TemplateRenderError(f"Failed to render {template_name}: {e}")

    def render_form(
        self,
        session: FormSession,
        errors: Optional[dict[str, str]] = None,
        notice: Optional[str] = None,
    ) -> str:
        """Render a form session as an HTML page.

        Args:
            session: Session whose widgets and values are shown
            errors: Field id to inline error message
            notice: Transient message shown above the form (e.g., a save failure)
        """
        return self.render("respond.html", {
            "form": session.form,
            "widgets": session.describe(),
            "errors": errors or {},
            "notice": notice,
        })

    def render_thank_you(self, form_title: str) -> str:
        return self.render("thank_you.html", {"title": form_title})

    def render_not_found(self) -> str:
        return self.render("not_found.html", {})


# Global singleton instance
_renderer_instance: Optional[TemplateRenderer] = None


def get_template_renderer() -> TemplateRenderer:
    """Get global TemplateRenderer instance.

    Returns:
        Global TemplateRenderer instance
    """
    global _renderer_instance
    if _renderer_instance is None:
        _renderer_instance = TemplateRenderer()
    return _renderer_instance
