"""Form template loader with caching and validation.

This module loads reusable form templates from YAML files, validates them
against Pydantic schemas, and caches the results for performance.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from feedbackhub.schemas.form import FormTemplate
from feedbackhub.logging_config import get_logger

logger = get_logger(__name__)


class TemplateNotFoundError(Exception):
    """Raised when a template file is not found."""
    pass


class TemplateValidationError(Exception):
    """Raised when a template fails validation."""
    pass


class FormTemplateLoader:
    """Service for loading and caching form templates.

    Templates are loaded from YAML files in the forms directory and validated
    against Pydantic schemas. Results are cached for performance.
    """

    def __init__(self, forms_dir: Optional[str] = None):
        """Initialize template loader.

        Args:
            forms_dir: Path to templates directory (defaults to ./forms)
        """
        if forms_dir is None:
            project_root = Path(__file__).parent.parent.parent
            forms_dir = project_root / "forms"

        self.forms_dir = Path(forms_dir)

        if not self.forms_dir.exists():
            logger.warning(f"Form templates directory not found: {self.forms_dir}")

    @lru_cache(maxsize=128)
    def load_template(self, template_id: str) -> FormTemplate:
        """Load and validate a template from its YAML file.

        Results are cached. Clear the cache with clear_cache() when files
        change at runtime.

        Args:
            template_id: Template identifier (YAML filename without .yaml)

        Returns:
            Validated FormTemplate

        Raises:
            TemplateNotFoundError: If the template file doesn't exist
            TemplateValidationError: If the template fails validation

        Example:
            >>> loader = FormTemplateLoader()
            >>> template = loader.load_template("customer_satisfaction")
            >>> print(template.title)
            'Customer Satisfaction Survey'
        """
        if not template_id.replace("_", "").replace("-", "").isalnum():
            raise TemplateNotFoundError(f"Template '{template_id}' not found")

        yaml_path = self.forms_dir / f"{template_id}.yaml"

        if not yaml_path.exists():
            logger.error(f"Template file not found: {yaml_path}")
            raise TemplateNotFoundError(f"Template '{template_id}' not found at {yaml_path}")

        try:
            with open(yaml_path, "r") as f:
                raw_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error for {template_id}: {e}")
            raise TemplateValidationError(f"Invalid YAML in template '{template_id}': {e}")
        except OSError as e:
            logger.error(f"Error reading template file {yaml_path}: {e}")
            raise TemplateValidationError(f"Error reading template '{template_id}': {e}")

        if not isinstance(raw_data, dict):
            raise TemplateValidationError(f"Template '{template_id}' must be a YAML mapping")

        try:
            template = FormTemplate.model_validate(raw_data)
        except ValidationError as e:
            logger.error(f"Validation error for template {template_id}: {e}")
            raise TemplateValidationError(f"Validation failed for template '{template_id}': {e}")

        if template.id != template_id:
            raise TemplateValidationError(
                f"Template id '{template.id}' does not match filename '{template_id}'"
            )

        logger.info(f"Loaded form template: {template_id} ({len(template.fields)} fields)")
        return template

    def list_templates(self) -> list[str]:
        """List all available template IDs, sorted."""
        if not self.forms_dir.exists():
            return []

        template_ids = [f.stem for f in self.forms_dir.glob("*.yaml")]
        logger.debug(f"Found {len(template_ids)} templates: {template_ids}")
        return sorted(template_ids)

    def clear_cache(self):
        """Clear the template cache."""
        self.load_template.cache_clear()
        logger.info("Template cache cleared")
