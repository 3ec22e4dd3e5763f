"""Template seeding script.

Run this script to add the built-in templates (default, web app, api) to
the template store. Templates whose name already exists are skipped.

Usage:
    python -m scripts.seed_templates
"""

import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.core.config import get_settings
from app.services.templates import BUILTIN_TEMPLATES, TemplateService


def main() -> None:
    """Store every built-in template that is not present yet."""
    settings = get_settings()
    service = TemplateService(settings.template_store_path)

    for kind, (name, _) in BUILTIN_TEMPLATES.items():
        if service.get_template_by_name(name) is not None:
            print(f"Skipping '{name}': already exists")
            continue
        template = service.create_builtin_template(kind)
        print(f"Created '{template.name}' ({len(template.columns)} columns)")

    print(f"Template store: {service.path}")


if __name__ == "__main__":
    main()
