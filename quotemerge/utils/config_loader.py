"""Configuration loading and management."""

import copy
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Values in the file are merged over ``get_default_config()``, so a file
    only needs the keys it changes.

    Args:
        config_path: Path to config file (defaults to configs/default.yaml)

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        possible_paths = [
            Path("configs/default.yaml"),
            Path(__file__).parent.parent.parent / "configs" / "default.yaml"
        ]

        for path in possible_paths:
            if path.exists():
                config_path = str(path)
                break
        else:
            return get_default_config()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        loaded = yaml.safe_load(f) or {}

    if not isinstance(loaded, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    return merge_dicts(get_default_config(), loaded)


def save_config(config: Dict[str, Any], config_path: Union[str, Path]) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration dictionary
        config_path: Output path
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def merge_dicts(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def get_default_config() -> Dict[str, Any]:
    """Get default configuration."""
    return {
        "merge": {
            "table_style": "four_column",
            "two_column_max_width": 420.0,
            "x_tolerance": 1.5,
            "y_tolerance": 2.0,
            "word_gap_ratio": 0.6,
            "redact_tokens": True,
            "min_font_size": 6.0,
            "fallback_candidates": [
                [300.0, 115.0, 250.0, 25.0],
                [320.0, 115.0, 200.0, 20.0],
                [280.0, 115.0, 300.0, 30.0],
                [350.0, 110.0, 180.0, 20.0],
            ],
            "fallback_font_size": 12.0,
            "default_target_page": 0,
            "regular_font_file": None,
            "bold_font_file": None,
            "verify_output": True,
            "garbage_level": 3
        },
        "branding": {
            "vendor_name": "CloudFuze",
            "legal_name": "CloudFuze, Inc.",
            "product_name": "X-Change",
            "migration_target": "Teams",
            "address_lines": ["2500 Regency Parkway, Cary, NC 27518"],
            "website": "https://www.cloudfuze.com/",
            "phone": "+1 252-558-9019",
            "sales_email": "sales@cloudfuze.com",
            "support_email": "support@cloudfuze.com",
            "partner_name": "Microsoft",
            "partner_label": "Partner",
            "partner_tier": "Gold Cloud Productivity",
            "classification": "Classification: Confidential"
        },
        "storage": {
            "directory": ".cache/documents"
        },
        "logging": {
            "level": "INFO",
            "log_file": None,
            "use_loguru": True
        }
    }
