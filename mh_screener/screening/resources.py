import os
from functools import lru_cache
from typing import Any, Dict

import yaml

DEFAULT_RESOURCES_PATH = os.path.join(os.path.dirname(__file__), "..", "data", "resources.yaml")

REQUIRED_KEYS = ("recommended_resources", "guidance", "observations", "follow_up_questions")


@lru_cache(maxsize=8)
def load_resources(path: str = "") -> Dict[str, Any]:
    path = path or DEFAULT_RESOURCES_PATH
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    missing = [k for k in REQUIRED_KEYS if k not in data]
    if missing:
        raise ValueError(f"resource directory {path} is missing keys: {missing}")
    return data
