import json
import platform
import sys
from datetime import datetime, timezone
from importlib import metadata
from pathlib import Path
from typing import Iterable, Optional


TRACKED_PACKAGES = ("pandas", "numpy", "scipy", "openpyxl")


def write_json(path: Path, payload: dict) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True, default=str), encoding="utf-8")


def package_versions(packages: Iterable[str] = TRACKED_PACKAGES) -> dict:
    versions = {}
    for pkg in packages:
        try:
            versions[pkg] = metadata.version(pkg)
        except metadata.PackageNotFoundError:
            versions[pkg] = None
    return versions


def run_metadata(argv: Optional[list] = None, **extra) -> dict:
    """Provenance block for outputs/logs: when, how, and with which library versions."""

    payload = {
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        "argv": list(sys.argv if argv is None else argv),
        "python_version": sys.version,
        "platform": platform.platform(),
        "packages": package_versions(),
    }
    payload.update(extra)
    return payload
