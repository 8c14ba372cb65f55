"""Moderation settings loaded from YAML.

Thresholds, the keyword list and the spam patterns can be overridden with a
YAML file. The file path comes from ``$BARTERGUARD_CONFIG`` unless one is
passed explicitly; ``$BARTERGUARD_HOME`` moves the data directory away from
``~/.barterguard``.

Example::

    report_threshold: 5
    spam_threshold: 3
    spam_window_seconds: 3600
    auto_ban_days: 7
    keywords: [cash, scam]
    log_levels:
      barterguard.moderation: DEBUG
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from barterguard.errors import ConfigError

DEFAULT_KEYWORDS: list[str] = [
    "$",
    "sell",
    "money",
    "cash",
    "payment",
    "buy",
    "price",
    "cost",
    "scam",
    "fake",
    "stolen",
    "illegal",
    "drugs",
    "weapon",
]

# (pattern, case_insensitive)
DEFAULT_SPAM_PATTERNS: list[tuple[str, bool]] = [
    (r"\b(viagra|casino|lottery|winner)\b", True),
    (r"\b(click here|visit now|act now)\b", True),
    (r"\b(free money|easy money|get rich)\b", True),
    (r"(.)\1{4,}", False),  # same character 5+ times
    (r"[A-Z]{10,}", False),  # long uppercase run
]


def default_data_dir() -> Path:
    home = os.getenv("BARTERGUARD_HOME")
    if home:
        return Path(home)
    return Path.home() / ".barterguard"


@dataclass
class ModerationConfig:
    """Tunable moderation policy."""

    report_threshold: int = 3
    spam_threshold: int = 3
    spam_window_seconds: int = 3600
    auto_ban_days: int = 7
    keywords: list[str] = field(default_factory=lambda: list(DEFAULT_KEYWORDS))
    spam_patterns: list[tuple[str, bool]] = field(
        default_factory=lambda: list(DEFAULT_SPAM_PATTERNS)
    )
    data_dir: Path = field(default_factory=default_data_dir)
    # logger name -> level name, applied by configure_logging
    log_levels: dict[str, str] = field(default_factory=dict)


def load_config(path: Optional[str | Path] = None) -> ModerationConfig:
    """Load a ModerationConfig from a YAML file.

    Falls back to defaults when no path is given and ``$BARTERGUARD_CONFIG``
    is unset, or when the file does not exist.
    """
    if path is None:
        path = os.getenv("BARTERGUARD_CONFIG")
    config = ModerationConfig()
    if not path or not Path(path).exists():
        return config

    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping of settings, got {type(data).__name__}")

    for key in ("report_threshold", "spam_threshold", "spam_window_seconds", "auto_ban_days"):
        if key in data:
            setattr(config, key, int(data[key]))
    if "keywords" in data:
        config.keywords = [str(k).lower() for k in data["keywords"]]
    if "spam_patterns" in data:
        patterns = []
        for entry in data["spam_patterns"]:
            if isinstance(entry, dict):
                patterns.append((entry["pattern"], bool(entry.get("ignore_case", False))))
            else:
                patterns.append((str(entry), False))
        config.spam_patterns = patterns
    if data.get("data_dir"):
        config.data_dir = Path(data["data_dir"]).expanduser()
    if "log_levels" in data:
        if not isinstance(data["log_levels"], dict):
            raise ConfigError(f"{path}: log_levels must map logger names to levels")
        config.log_levels = {str(k): str(v).upper() for k, v in data["log_levels"].items()}
    return config
