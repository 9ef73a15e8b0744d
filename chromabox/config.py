"""
Config loader for chromabox.
Reads config.yaml once. All other modules import from here.
runtime_config.yaml holds the last selected tenant/database scope and is
hot-reloaded on every call to get_runtime_config() via mtime check.
"""

import logging
import os
import re
from pathlib import Path

import yaml
from dotenv import load_dotenv

from chromabox.models import ConnectionConfig

load_dotenv()

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"

_config: dict | None = None
_config_path: Path | None = None

# Runtime config hot-reload state
_runtime_config: dict = {}
_runtime_mtime: float = 0.0


def _resolve_env_vars(value: str) -> str:
    """Replace ${ENV_VAR} patterns with actual environment variable values."""
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, "")
    return re.sub(r"\$\{(\w+)\}", replacer, value)


def _walk_and_resolve(obj):
    """Recursively resolve env vars in all string values."""
    if isinstance(obj, dict):
        return {k: _walk_and_resolve(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_walk_and_resolve(v) for v in obj]
    elif isinstance(obj, str):
        return _resolve_env_vars(obj)
    return obj


def config_path() -> Path:
    """Active config file: explicit load path, then $CHROMABOX_CONFIG, then default."""
    if _config_path is not None:
        return _config_path
    env_path = os.environ.get("CHROMABOX_CONFIG")
    return Path(env_path) if env_path else _DEFAULT_CONFIG_PATH


def runtime_config_path() -> Path:
    return config_path().parent / "runtime_config.yaml"


def load_config(path: Path | None = None) -> dict:
    """Load and cache config from YAML file. An explicit path replaces the cache."""
    global _config, _config_path
    if path is not None:
        _config_path = Path(path)
        _config = None
    if _config is not None:
        return _config

    cfg_path = config_path()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config not found: {cfg_path}")

    with open(cfg_path) as f:
        raw = yaml.safe_load(f) or {}

    _config = _walk_and_resolve(raw)
    return _config


def get_config() -> dict:
    """Return cached base config, loading if necessary."""
    if _config is None:
        return load_config()
    return _config


def reset_config() -> None:
    """Drop all cached state (tests, or after editing config.yaml)."""
    global _config, _config_path, _runtime_config, _runtime_mtime
    _config = None
    _config_path = None
    _runtime_config = {}
    _runtime_mtime = 0.0


def get_runtime_config() -> dict:
    """
    Return runtime_config.yaml overrides, hot-reloading if the file changed.
    Returns the contents of the `runtime` key, or {} if file is missing/empty.
    """
    global _runtime_config, _runtime_mtime

    path = runtime_config_path()
    if not path.exists():
        return {}

    try:
        mtime = path.stat().st_mtime
    except OSError:
        return _runtime_config

    if mtime == _runtime_mtime:
        return _runtime_config

    # File changed, reload
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        _runtime_config = data.get("runtime", {}) or {}
        _runtime_mtime = mtime
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)  # keep last good config

    return _runtime_config


def update_runtime_config(key: str, value) -> bool:
    """
    Write a single key into the runtime: block of runtime_config.yaml.
    Read-modify-write of the whole file. Returns True on success.
    """
    global _runtime_mtime
    path = runtime_config_path()
    try:
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        else:
            data = {}

        if "runtime" not in data or not isinstance(data["runtime"], dict):
            data["runtime"] = {}

        data["runtime"][key] = value

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True)

        # Bust the mtime cache so next get_runtime_config() picks it up
        _runtime_mtime = 0.0
        return True
    except (OSError, yaml.YAMLError) as e:
        logger.error(
            "update_runtime_config(%s) failed: %s (path=%s, writable=%s)",
            key, e, path, os.access(path.parent, os.W_OK),
        )
        return False


def get_connection_config() -> ConnectionConfig:
    """The `connection:` block with runtime tenant/database scope applied on top."""
    conn = dict(get_config().get("connection", {}) or {})
    rt = get_runtime_config()
    for key in ("tenant", "database"):
        if rt.get(key):
            conn[key] = rt[key]
    return ConnectionConfig.from_dict(conn)


def get_browse_config() -> dict:
    browse = get_config().get("browse", {}) or {}
    return {
        "page_size": int(browse.get("page_size", 50)),
        "query_results": int(browse.get("query_results", 5)),
    }
