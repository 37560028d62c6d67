import json
import os
from pathlib import Path
from typing import Any

from briq_router.core.constants.base import SUBGRAPH_GATEWAY_URL, SUBGRAPH_IDS
from briq_router.core.constants.contracts import (
    BASE_AAVE_V3_POOL,
    BASE_MORPHO_USDC_MARKET,
    BASE_USDC,
)

_CONFIG_ENV_KEYS = ("BRIQ_CONFIG_PATH", "BRIQ_CONFIG")
_DEFAULT_CONFIG_FILENAME = "config.json"


def _find_project_root(start: Path) -> Path | None:
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def _project_root() -> Path | None:
    return _find_project_root(Path.cwd()) or _find_project_root(Path(__file__).parent)


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()

    env_path = next(
        (os.getenv(k, "").strip() for k in _CONFIG_ENV_KEYS if os.getenv(k)), ""
    )
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_absolute():
            return p
        root = _project_root()
        return (root / p) if root else p

    root = _project_root()
    return (root / _DEFAULT_CONFIG_FILENAME) if root else Path(_DEFAULT_CONFIG_FILENAME)


def load_config_json(
    path: str | Path | None = None, *, require_exists: bool = False
) -> dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        if require_exists:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return {}
    try:
        return json.loads(cfg_path.read_text())
    except json.JSONDecodeError as exc:
        raise ValueError(f"Config file is not valid JSON: {cfg_path}") from exc


CONFIG: dict[str, Any] = load_config_json()


def set_config(config: dict[str, Any]) -> None:
    """Replace the global CONFIG dict in-place.

    Modules that imported CONFIG at import time see the new values.
    """
    CONFIG.clear()
    CONFIG.update(config)


def load_config(
    path: str | Path | None = None, *, require_exists: bool = False
) -> None:
    set_config(load_config_json(path, require_exists=require_exists))


def get_subgraph_api_key() -> str | None:
    api_key = CONFIG.get("system", {}).get("graph_api_key")
    if api_key:
        return str(api_key).strip()
    return os.environ.get("GRAPHQL_API_KEY")


def get_subgraph_urls(api_key: str | None = None) -> dict[str, str]:
    """Subgraph endpoint per name; ``rates.subgraph_urls`` entries win over the gateway defaults."""
    key = api_key or get_subgraph_api_key() or ""
    urls = {
        name: SUBGRAPH_GATEWAY_URL.format(api_key=key, subgraph_id=subgraph_id)
        for name, subgraph_id in SUBGRAPH_IDS.items()
    }
    overrides = CONFIG.get("rates", {}).get("subgraph_urls", {})
    urls.update({str(k): str(v) for k, v in overrides.items()})
    return urls


def get_rate_asset() -> str:
    return str(CONFIG.get("rates", {}).get("asset") or BASE_USDC)


def get_registry_pools() -> dict[str, str]:
    """Pool address the registry stores each rate source under."""
    pools = {"aave_v3_base": BASE_AAVE_V3_POOL, "morpho_base": BASE_MORPHO_USDC_MARKET}
    pools.update(CONFIG.get("rates", {}).get("pools", {}))
    return pools


def get_log_level() -> str:
    return str(CONFIG.get("system", {}).get("log_level") or "INFO").upper()
