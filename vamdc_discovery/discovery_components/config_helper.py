"""
Configuration Helper - Discovery settings from defaults, YAML and environment
"""

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

import yaml


DEFAULT_REGISTRY_URL = "http://registry.vamdc.eu/registry-12.07/services/RegistryQueryv1_0"
DEFAULT_USER_AGENT = "VAMDC-Discovery/1.0"

NODE_SOURCES = ("live", "static")
ID_SCHEMES = ("ordinal", "hash")

ENV_VARS = {
    "node_source": "VAMDC_NODE_SOURCE",
    "registry_url": "VAMDC_REGISTRY_URL",
    "static_nodes": "VAMDC_STATIC_NODES",
    "registry_timeout": "VAMDC_REGISTRY_TIMEOUT",
    "probe_deadline": "VAMDC_PROBE_DEADLINE",
    "max_concurrency": "VAMDC_MAX_CONCURRENCY",
    "id_scheme": "VAMDC_ID_SCHEME",
}


@dataclass(frozen=True)
class DiscoveryConfig:
    """Deployment configuration for node discovery and probing"""
    node_source: str = "live"
    registry_url: str = DEFAULT_REGISTRY_URL
    static_nodes: Optional[str] = None
    registry_timeout: float = 30.0
    probe_deadline: float = 30.0
    max_concurrency: Optional[int] = None
    id_scheme: str = "ordinal"
    user_agent: str = DEFAULT_USER_AGENT

    def validate(self) -> "DiscoveryConfig":
        if self.node_source not in NODE_SOURCES:
            raise ValueError(f"node_source must be one of {NODE_SOURCES}, got {self.node_source!r}")
        if self.id_scheme not in ID_SCHEMES:
            raise ValueError(f"id_scheme must be one of {ID_SCHEMES}, got {self.id_scheme!r}")
        if self.node_source == "static" and not self.static_nodes:
            raise ValueError("static_nodes is required when node_source is 'static'")
        if self.registry_timeout <= 0 or self.probe_deadline <= 0:
            raise ValueError("registry_timeout and probe_deadline must be positive")
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        return self


def _coerce(name: str, value: Any) -> Any:
    """Convert raw YAML/environment values to the field's type"""
    if value is None:
        return None
    try:
        if name in ("registry_timeout", "probe_deadline"):
            return float(value)
        if name == "max_concurrency":
            if isinstance(value, str) and value.strip().lower() in ("", "none", "unbounded"):
                return None
            return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid value for {name}: {value!r}")
    return str(value)


def _read_yaml(path: str) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def load_config(path: Optional[str] = None, **overrides) -> DiscoveryConfig:
    """
    Build the discovery configuration.

    Later sources win: defaults, YAML file, environment variables, then
    keyword overrides that are not None.

    Args:
        path: Optional YAML config file
        **overrides: Explicit settings, e.g. from CLI flags

    Returns:
        Validated DiscoveryConfig
    """
    known = {f.name for f in fields(DiscoveryConfig)}
    values: Dict[str, Any] = {}

    if path:
        values.update(_read_yaml(path))

    for name, env_var in ENV_VARS.items():
        if env_var in os.environ:
            values[name] = os.environ[env_var]

    values.update({k: v for k, v in overrides.items() if v is not None})

    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

    defaults = DiscoveryConfig()
    coerced = {name: _coerce(name, value) for name, value in values.items()}
    # null in YAML only clears the optional settings
    coerced = {name: value for name, value in coerced.items()
               if value is not None or getattr(defaults, name) is None}
    return replace(defaults, **coerced).validate()
