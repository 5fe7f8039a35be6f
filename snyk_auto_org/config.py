"""snyk_auto_org.config

The user config file and its defaults.

Location
--------
``$SNYK_AUTO_ORG_HOME/config.json`` when the variable is set, otherwise
``~/.config/snyk-auto-org/config.json``. The SQLite cache and an optional
``.env`` file live in the same directory.

Shape::

  {
    "cache_ttl": "24h",
    "default_org": "",
    "verbose": false
  }

``cache_ttl`` uses Go duration syntax (``24h``, ``1h30m``, ``90s``) because
that is what existing config files written by earlier releases contain.

When the file does not exist it is created with the defaults. CLI overrides
are applied in memory with :meth:`AppConfig.with_overrides` and never written
back.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field, replace
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError
from .io.fs import read_json, write_json_atomic

APP_DIR_NAME = "snyk-auto-org"
CONFIG_FILE_NAME = "config.json"
CACHE_FILE_NAME = "cache.db"
HOME_ENV_VAR = "SNYK_AUTO_ORG_HOME"

DEFAULT_CACHE_TTL = "24h"

_UNIT_SECONDS: Dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(raw: str) -> timedelta:
    """Parse a Go-style duration string into a timedelta.

    Raises ConfigError for anything Go's ``time.ParseDuration`` would reject.
    """
    if not isinstance(raw, str):
        raise ConfigError(f"invalid cache TTL: {raw!r}")

    s = raw.strip()
    if not s:
        raise ConfigError("invalid cache TTL: empty duration")

    sign = 1.0
    if s[0] in "+-":
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]

    if s == "0":
        return timedelta(0)

    total = 0.0
    pos = 0
    while pos < len(s):
        m = _DURATION_PART_RE.match(s, pos)
        if not m:
            raise ConfigError(f"invalid cache TTL: {raw!r}")
        total += float(m.group(1)) * _UNIT_SECONDS[m.group(2)]
        pos = m.end()

    if pos == 0:
        raise ConfigError(f"invalid cache TTL: {raw!r}")

    return timedelta(seconds=sign * total)


def format_duration(td: timedelta) -> str:
    """Format a timedelta compactly: ``24h``, ``1h30m``, ``45s``, ``0s``."""
    total = td.total_seconds()
    if total == 0:
        return "0s"

    sign = "-" if total < 0 else ""
    total = abs(total)

    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)

    out = []
    if hours:
        out.append(f"{int(hours)}h")
    if minutes:
        out.append(f"{int(minutes)}m")
    if seconds:
        out.append(f"{seconds:g}s")
    return sign + "".join(out)


def default_config_dir() -> Path:
    env = os.environ.get(HOME_ENV_VAR, "").strip()
    if env:
        return Path(env).expanduser()
    return Path.home() / ".config" / APP_DIR_NAME


def _as_bool(v: Any, *, key: str) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str) and v.strip().lower() in {"1", "true", "yes", "y", "on"}:
        return True
    if isinstance(v, str) and v.strip().lower() in {"0", "false", "no", "n", "off", ""}:
        return False
    raise ConfigError(f"invalid value for {key!r}: {v!r}")


@dataclass(frozen=True)
class AppConfig:
    """Effective configuration for one invocation."""

    cache_ttl: timedelta = field(default_factory=lambda: parse_duration(DEFAULT_CACHE_TTL))
    default_org: str = ""
    verbose: bool = False

    # Where the config was loaded from; None for an in-memory config.
    path: Optional[Path] = None
    # Keys we do not understand, kept so save_config() does not drop them.
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def config_dir(self) -> Path:
        return self.path.parent if self.path else default_config_dir()

    @property
    def cache_path(self) -> Path:
        return self.config_dir / CACHE_FILE_NAME

    def with_overrides(
        self,
        *,
        verbose: Optional[bool] = None,
        cache_ttl: Optional[str] = None,
    ) -> "AppConfig":
        """Return a copy with CLI overrides applied (``None`` = keep)."""
        cfg = self
        if verbose:
            cfg = replace(cfg, verbose=True)
        if cache_ttl is not None and cache_ttl.strip():
            cfg = replace(cfg, cache_ttl=parse_duration(cache_ttl))
        return cfg

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out.update(
            {
                "cache_ttl": format_duration(self.cache_ttl),
                "default_org": self.default_org,
                "verbose": self.verbose,
            }
        )
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, path: Optional[Path] = None) -> "AppConfig":
        if not isinstance(data, dict):
            raise ConfigError(f"config file must contain a JSON object: {path}")

        ttl_raw = data.get("cache_ttl", DEFAULT_CACHE_TTL)
        default_org = data.get("default_org", "")
        if default_org is None:
            default_org = ""
        if not isinstance(default_org, str):
            raise ConfigError(f"invalid value for 'default_org': {default_org!r}")

        known = {"cache_ttl", "default_org", "verbose"}
        return cls(
            cache_ttl=parse_duration(str(ttl_raw)),
            default_org=default_org.strip(),
            verbose=_as_bool(data.get("verbose", False), key="verbose"),
            path=path,
            extra={k: v for k, v in data.items() if k not in known},
        )


def save_config(cfg: AppConfig, path: Optional[Path] = None) -> Path:
    """Write *cfg* to disk atomically and return the path written."""
    target = Path(path) if path else (cfg.path or default_config_dir() / CONFIG_FILE_NAME)
    try:
        write_json_atomic(target, cfg.to_dict())
    except OSError as e:
        raise ConfigError(f"failed to write config file {target}: {e}") from e
    return target


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load the config file, creating it with defaults when missing."""
    target = Path(path) if path else default_config_dir() / CONFIG_FILE_NAME

    if not target.exists():
        cfg = AppConfig(path=target)
        save_config(cfg, target)
        return cfg

    try:
        data = read_json(target)
    except json.JSONDecodeError as e:
        raise ConfigError(f"failed to parse config file {target}: {e}") from e
    except OSError as e:
        raise ConfigError(f"failed to read config file {target}: {e}") from e

    return AppConfig.from_dict(data, path=target)
