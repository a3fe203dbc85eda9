from __future__ import annotations

"""
Process-wide settings.

Loaded once at startup and injected into every collaborator; never mutated
afterwards. Precedence (lowest to highest):
  - built-in defaults
  - YAML file (config/params.yaml or $SOLAR_PROXY_CONFIG), skipped if absent
  - environment variables (a .env file is loaded first via python-dotenv)

YAML schema (all keys optional):
    google:
      api_key: "..."
      url_signing_secret: "..."
    solar:
      request_timeout_s: 30
      imagery_radius_m: 100
      allowed_tile_hosts: ["solar.googleapis.com"]
    server:
      host: "0.0.0.0"
      port: 3000
    logging:
      level: "INFO"
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml
from dotenv import load_dotenv


DEFAULT_CONFIG_PATH = "config/params.yaml"


@dataclass(frozen=True)
class Settings:
    google_api_key: Optional[str] = None
    url_signing_secret: Optional[str] = None
    request_timeout_s: float = 30.0
    imagery_radius_m: int = 100
    allowed_tile_hosts: Tuple[str, ...] = ("solar.googleapis.com",)
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @property
    def has_api_key(self) -> bool:
        return bool(self.google_api_key)

    @property
    def has_signing_secret(self) -> bool:
        return bool(self.url_signing_secret)


def _load_yaml(path: str) -> Dict:
    if not Path(path).exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _split_hosts(raw: str) -> Tuple[str, ...]:
    return tuple(h.strip().lower() for h in raw.split(",") if h.strip())


def load_settings(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from defaults, an optional YAML file and the environment.

    Params:
        path: YAML config path (falls back to $SOLAR_PROXY_CONFIG, then config/params.yaml)
        env: mapping to read instead of os.environ (tests); skips .env loading
    """
    if env is None:
        load_dotenv()
        env = os.environ

    P = _load_yaml(path or env.get("SOLAR_PROXY_CONFIG") or DEFAULT_CONFIG_PATH)
    google = P.get("google", {}) or {}
    solar = P.get("solar", {}) or {}
    server = P.get("server", {}) or {}
    logging_cfg = P.get("logging", {}) or {}
    defaults = Settings()

    hosts = solar.get("allowed_tile_hosts")
    allowed = tuple(str(h).lower() for h in hosts) if hosts else defaults.allowed_tile_hosts
    if env.get("SOLAR_PROXY_ALLOWED_TILE_HOSTS"):
        allowed = _split_hosts(env["SOLAR_PROXY_ALLOWED_TILE_HOSTS"])

    try:
        return Settings(
            google_api_key=env.get("GOOGLE_API_KEY") or google.get("api_key"),
            url_signing_secret=env.get("URL_SIGNING_SECRET") or google.get("url_signing_secret"),
            request_timeout_s=float(
                env.get("SOLAR_PROXY_TIMEOUT_S") or solar.get("request_timeout_s", defaults.request_timeout_s)
            ),
            imagery_radius_m=int(
                env.get("SOLAR_PROXY_IMAGERY_RADIUS_M") or solar.get("imagery_radius_m", defaults.imagery_radius_m)
            ),
            allowed_tile_hosts=allowed,
            host=str(env.get("HOST") or server.get("host", defaults.host)),
            port=int(env.get("PORT") or server.get("port", defaults.port)),
            log_level=str(env.get("LOG_LEVEL") or logging_cfg.get("level", defaults.log_level)).upper(),
        )
    except ValueError as e:
        raise ValueError(f"Invalid configuration value: {e}") from e
