"""Configuration loader.

Reads reconstruction settings from YAML files and returns a plain
dictionary which `drtrack.config.ReckoningConfig.from_dict` turns into
a validated configuration object.
"""

from pathlib import Path
from typing import Any, Dict

import yaml

from .logging import get_logger

logger = get_logger(__name__)


def load_config(path: str) -> Dict[str, Any]:
    """Load a YAML configuration file into a dictionary.

    Parameters
    ----------
    path : str
        Path to the YAML configuration file.

    Returns
    -------
    dict
        Parsed configuration dictionary.  Returns an empty dict if the
        file does not exist or is empty.
    """
    cfg_path = Path(path)
    if not cfg_path.is_file():
        logger.warning("Configuration file %s not found, using defaults", cfg_path)
        return {}
    with open(cfg_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{cfg_path} must contain a mapping at the top level")
    return data
