import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "provider": "openai",
    "model": None,  # None = provider default (OPENAI_MODEL env var for openai)
    "instructions": None,  # None = built-in review guidance; set to a path string to override
    "output_dir": "reviews",  # each run writes to <output_dir>/CL_<changelist>
    "concurrency": 3,  # files reviewed in parallel, clamped to 1..10
    "chunk_concurrency": 1,  # chunks of one file reviewed in parallel; 1 = sequential
    "max_chunk_chars": 12000,
    "align_chunks_to_lines": False,
    "summary": True,
    "exclude": [],  # fnmatch patterns or depot directories to skip (e.g. "//depot/third_party/", "*.min.js")
    "p4_client": None,
    "p4_user": None,
    "p4_port": None,
}


def load_config(config_path: str = ".p4lens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .p4lens.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "exclude": list(DEFAULT_CONFIG["exclude"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["openai_base_url"] = os.environ.get("OPENAI_BASE_URL")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

    # Perforce connection: explicit config wins, then the usual P4 env vars.
    config["p4_client"] = config.get("p4_client") or os.environ.get("P4CLIENT")
    config["p4_user"] = config.get("p4_user") or os.environ.get("P4USER")
    config["p4_port"] = config.get("p4_port") or os.environ.get("P4PORT")

    return config


def load_instructions(config: dict) -> str:
    """
    Load the review instructions text.

    If ``instructions`` is set in config, loads from that path (relative to cwd).
    Otherwise returns "" and the prompt builder substitutes its built-in guidance.
    """
    custom_path = config.get("instructions")
    if custom_path:
        p = Path(custom_path)
        if not p.exists():
            raise FileNotFoundError(f"Instructions file not found: {custom_path}")
        return p.read_text(encoding="utf-8")

    return ""
