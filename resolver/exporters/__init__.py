"""Export convenience function."""

import logging
from pathlib import Path

from resolver.exporters.field_table import export_fields_csv, export_fields_excel
from resolver.exporters.json_export import export_canonical_json
from resolver.pipeline.models import TemplateResolution

logger = logging.getLogger(__name__)


def export_all(resolutions: list[TemplateResolution], output_dir: str) -> dict:
    """Run all exports and return dict of file paths created."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    paths = {}

    json_path = str(out / "documents.json")
    export_canonical_json(resolutions, json_path)
    paths["canonical_json"] = json_path

    csv_path = str(out / "field_table.csv")
    export_fields_csv(resolutions, csv_path)
    paths["fields_csv"] = csv_path

    xlsx_path = str(out / "field_table.xlsx")
    export_fields_excel(resolutions, xlsx_path)
    paths["fields_xlsx"] = xlsx_path

    logger.info("All exports written to %s", output_dir)
    return paths
