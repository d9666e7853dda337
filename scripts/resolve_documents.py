#!/usr/bin/env python3
"""Batch template resolution over a folder of digitized documents."""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from resolver.core.audit import LoggingAuditSink, SQLiteAuditLog
from resolver.core.config import load_engine_config
from resolver.core.templates import load_template_registry
from resolver.exporters import export_all
from resolver.parsers.analyze_result import from_analyze_result, is_analyze_result
from resolver.pipeline.resolver import TemplateResolver, run_resolution

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("resolve")

DEFAULT_TEMPLATES = PROJECT_ROOT / "templates" / "police_letters_v1.yaml"
INPUT_SUFFIXES = (".txt", ".json")


# ── Input Loading ────────────────────────────────────────────────────


def load_input(path: Path) -> Any:
    """Plain text for .txt; analyzeResult or arbitrary JSON for .json."""
    if path.suffix == ".txt":
        return path.read_text(encoding="utf-8")

    payload = json.loads(path.read_text(encoding="utf-8"))
    if is_analyze_result(payload):
        return from_analyze_result(payload)
    return payload


def collect_documents(inputs: list[str]) -> dict[str, Any]:
    """Map document id (file stem) to its loaded content."""
    files: list[Path] = []
    for raw in inputs:
        p = Path(raw)
        if p.is_dir():
            files.extend(sorted(f for f in p.iterdir() if f.suffix in INPUT_SUFFIXES))
        elif p.is_file():
            files.append(p)
        else:
            logger.warning("Input not found: %s — skipping", p)

    documents: dict[str, Any] = {}
    for f in files:
        try:
            documents[f.stem] = load_input(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Could not read %s: %s", f, exc)
    return documents


# ── Run ──────────────────────────────────────────────────────────────


def run(
    inputs: list[str],
    templates_path: str,
    config_path: str | None = None,
    output_dir: str | None = None,
    audit_db: str | None = None,
    offline: bool = False,
) -> dict:
    t_start = time.time()

    config = load_engine_config(config_path)
    if offline:
        config = config.model_copy(update={"use_external_services": False})
        logger.info("Offline mode: local fallbacks only")

    registry = load_template_registry(templates_path)
    catalog_hash = registry.catalog_hash()
    logger.info("Template catalog hash: %s", catalog_hash[:16])
    audit = SQLiteAuditLog(audit_db) if audit_db else LoggingAuditSink()

    documents = collect_documents(inputs)
    logger.info("Loaded %d documents", len(documents))

    resolver = TemplateResolver.from_config(registry, config, audit=audit)
    try:
        resolutions, stats = run_resolution(resolver, documents)
        if isinstance(audit, SQLiteAuditLog):
            stats["audit_events"] = audit.counts_by_action()
    finally:
        if isinstance(audit, SQLiteAuditLog):
            audit.close()
    stats["catalog_hash"] = catalog_hash

    if output_dir:
        paths = export_all(list(resolutions.values()), output_dir)
        for name, path in paths.items():
            logger.info("  %s: %s", name, path)

    elapsed = time.time() - t_start
    logger.info("=" * 60)
    logger.info("RESOLUTION COMPLETE in %.1fs", elapsed)
    logger.info("Stats: %s", json.dumps(stats, indent=2))
    return stats


# ── CLI ──────────────────────────────────────────────────────────────


def main():
    parser = argparse.ArgumentParser(description="Resolve documents against letter templates")
    parser.add_argument(
        "--input", nargs="+", required=True,
        help="Document files (.txt / .json) or folders containing them",
    )
    parser.add_argument(
        "--templates", default=str(DEFAULT_TEMPLATES),
        help="Path to template catalog YAML",
    )
    parser.add_argument("--config", default=None, help="Path to engine config YAML")
    parser.add_argument("--output", default=None, help="Directory for JSON/CSV/Excel exports")
    parser.add_argument("--audit-db", default=None, help="SQLite file for the audit trail")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip the Ollama services and use local fallbacks only",
    )
    args = parser.parse_args()

    stats = run(
        args.input,
        args.templates,
        config_path=args.config,
        output_dir=args.output,
        audit_db=args.audit_db,
        offline=args.offline,
    )
    if stats["failed"]:
        sys.exit(1)


if __name__ == "__main__":
    main()
