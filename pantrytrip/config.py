"""TOML configuration loader for pantrytrip."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ValidationError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

_DEFAULT_DB_PATH = "~/.config/pantrytrip/pantry.db"


@dataclass
class MatchingConfig:
    exact_threshold: int = 90
    fuzzy_threshold: int = 60
    prefer_same_category: bool = True

    def validate(self) -> None:
        if not 0 <= self.fuzzy_threshold <= self.exact_threshold <= 100:
            raise ValidationError(
                "thresholds must satisfy 0 <= fuzzy_threshold <= exact_threshold <= 100, "
                f"got fuzzy={self.fuzzy_threshold} exact={self.exact_threshold}"
            )


@dataclass
class ReceiptConfig:
    review_confidence: float = 70


@dataclass
class OrchestratorConfig:
    call_timeout: float | None = None  # seconds per external call


@dataclass
class DatabaseConfig:
    path: str = _DEFAULT_DB_PATH


@dataclass
class ReportConfig:
    font_path: str = ""


@dataclass
class PantryTripConfig:
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    receipt: ReceiptConfig = field(default_factory=ReceiptConfig)
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    report: ReportConfig = field(default_factory=ReportConfig)


def load_config(path: str | Path | None = None) -> PantryTripConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    The database path can be overridden via the PANTRYTRIP_DB environment
    variable when the file leaves it unset.

    Raises:
        ValidationError: If the matching thresholds are inconsistent.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    mat = raw.get("matching", {})
    rcp = raw.get("receipt", {})
    orc = raw.get("orchestrator", {})
    dbs = raw.get("database", {})
    rpt = raw.get("report", {})

    # Resolve database path: config file → environment variable → default
    db_path = dbs.get("path", "") or os.environ.get("PANTRYTRIP_DB", "") or _DEFAULT_DB_PATH

    # 0 disables the per-call timeout
    timeout = orc.get("call_timeout", 0)

    matching = MatchingConfig(
        exact_threshold=mat.get("exact_threshold", 90),
        fuzzy_threshold=mat.get("fuzzy_threshold", 60),
        prefer_same_category=mat.get("prefer_same_category", True),
    )
    matching.validate()

    return PantryTripConfig(
        matching=matching,
        receipt=ReceiptConfig(
            review_confidence=rcp.get("review_confidence", 70),
        ),
        orchestrator=OrchestratorConfig(
            call_timeout=float(timeout) if timeout else None,
        ),
        database=DatabaseConfig(path=db_path),
        report=ReportConfig(font_path=rpt.get("font_path", "")),
    )
