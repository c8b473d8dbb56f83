"""
Template Manager for loading and rendering email templates from YAML files
"""
import html
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from pricemyfloor.core.config import settings
from pricemyfloor.utils.logging import get_logger

logger = get_logger(__name__)


class TemplateManager:
    """
    Manages email templates loaded from YAML files with versioning support.

    Each category holds versions; each version has a `subject` and an `html`
    template using str.format placeholders.
    """

    def __init__(self, templates_file: Optional[str] = None):
        """
        Initialize the template manager.

        Args:
            templates_file: Path to email_templates.yaml. If None, looks for it in:
                            1. Current directory
                            2. Project root
        """
        if templates_file is None:
            current_dir = Path.cwd() / "email_templates.yaml"
            if current_dir.exists():
                templates_file = str(current_dir)
            else:
                # Try project root (assuming we're in src/pricemyfloor/utils/)
                project_root = Path(__file__).parent.parent.parent.parent / "email_templates.yaml"
                if project_root.exists():
                    templates_file = str(project_root)
                else:
                    raise FileNotFoundError(
                        "email_templates.yaml not found. Please create it in the project root."
                    )

        self.templates_file = Path(templates_file)
        if not self.templates_file.exists():
            raise FileNotFoundError(f"Templates file not found: {templates_file}")

        self._templates_data: Optional[Dict[str, Any]] = None
        self._load_templates()

    def _load_templates(self) -> None:
        """Load templates from YAML file"""
        try:
            with open(self.templates_file, "r") as f:
                self._templates_data = yaml.safe_load(f)

            if self._templates_data is None:
                raise ValueError("Templates file is empty or invalid")

            logger.info(f"[green]✅ Loaded email templates from:[/green] {self.templates_file}")
        except Exception as e:
            logger.error(f"[red]❌ Failed to load email templates:[/red] {e}")
            raise

    def get_template(self, category: str, version: Optional[str] = None) -> Dict[str, Any]:
        """
        Get a template by category and version.

        Raises:
            KeyError: If category or version not found
        """
        default_versions = self._templates_data.get("default_versions", {})
        if version is None:
            version = default_versions.get(category, "v1")

        templates = self._templates_data.get("templates", {})
        if category not in templates:
            raise KeyError(f"Template category '{category}' not found")

        category_templates = templates[category]
        if version not in category_templates:
            raise KeyError(
                f"Version '{version}' not found for category '{category}'. "
                f"Available versions: {list(category_templates.keys())}"
            )

        template = category_templates[version].copy()
        template["version"] = version
        template["category"] = category
        return template

    def render(self, category: str, version: Optional[str] = None, **kwargs) -> Dict[str, str]:
        """
        Render subject and HTML body for a category.

        Values are HTML-escaped before substitution into the body; the subject
        is plain text and receives the raw values.

        Returns:
            {"subject": ..., "html": ...}

        Raises:
            KeyError: If the template or a required variable is missing
        """
        template = self.get_template(category, version)
        escaped = {key: html.escape(str(value)) for key, value in kwargs.items()}
        try:
            return {
                "subject": template["subject"].format(**kwargs),
                "html": template["html"].format(**escaped),
            }
        except KeyError as e:
            raise KeyError(f"Missing required variable in template '{category}': {e}")

    def list_categories(self) -> list:
        """List all available template categories"""
        return list(self._templates_data.get("templates", {}).keys())


# Global template manager instance (lazy loaded)
_template_manager: Optional[TemplateManager] = None


def get_template_manager(templates_file: Optional[str] = None) -> TemplateManager:
    """
    Get the global template manager instance.

    Args:
        templates_file: Path to email_templates.yaml (only used on first call;
                        defaults to email.templates_file from config)
    """
    global _template_manager
    if _template_manager is None:
        _template_manager = TemplateManager(templates_file or settings.email.templates_file)
    return _template_manager
