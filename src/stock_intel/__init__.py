"""Stock intelligence analytics engine."""

import os


def get_engine_version() -> str:
    """Get version with fallback for dev mode."""
    if version := os.environ.get("ENGINE_VERSION"):
        return version
    try:
        from importlib.metadata import version as pkg_version

        return pkg_version("stock-intel")
    except Exception:
        return "dev"


ENGINE_VERSION = get_engine_version()
# Bump when cached score or history record layout changes (fields added, renamed or retyped)
# v1: Composite score cache entries, score and flag history records
SCHEMA_VERSION = "1"
