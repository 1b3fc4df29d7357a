"""
Analysis settings.

Defaults below reproduce the standard run; a YAML file passed with --rules is
merged over them. Nested sections merge key by key, except `models`, which
replaces the default model set as a whole. Unknown keys are ignored.
"""
from __future__ import annotations

import copy
from pathlib import Path

import yaml


DATASET_URL = (
    "https://raw.githubusercontent.com/rfordatascience/tidytuesday/master/"
    "data/2024/2024-08-13/worlds_fairs.csv"
)

DEFAULTS = {
    "source": DATASET_URL,
    "alpha": 0.05,
    "confidence_level": 0.95,
    "influence": {
        # Cook's distance cut-off is cooks_numerator / n
        "cooks_numerator": 4,
    },
    "multicollinearity": {
        "vif_threshold": 5,
    },
    "models": {
        "full": {
            "response": "visitors",
            "predictors": ["cost", "area", "attending_countries"],
        },
        "area_category": {
            "response": "visitors",
            "predictors": ["area", "category"],
        },
    },
    "describe": {
        "group_keys": ["country", "category"],
        "value": "visitors",
    },
}


def _merge(base: dict, override: dict) -> dict:
    out = copy.deepcopy(base)
    for key, value in override.items():
        if key not in base:
            continue
        if isinstance(base[key], dict) and isinstance(value, dict) and key != "models":
            out[key] = _merge(base[key], value)
        else:
            out[key] = value
    return out


def load_rules(path: str | None) -> dict:
    """Load YAML settings merged over the defaults; None gives the defaults.

    A path that was given but does not exist raises FileNotFoundError.
    """
    if not path:
        return copy.deepcopy(DEFAULTS)
    if not Path(path).is_file():
        raise FileNotFoundError(f"Settings file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return _merge(DEFAULTS, yaml.safe_load(f) or {})
