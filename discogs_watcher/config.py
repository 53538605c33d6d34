from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = "discogs_watcher_state.json"
DEFAULT_USER_AGENT = "discogs-watcher/0.1"

SETTINGS_KEYS = ("sort", "direction", "only_in_stock", "state_path", "timeout", "concurrency")


def _strip_inline_comment(val: str) -> str:
    in_single = False
    in_double = False
    for i, ch in enumerate(val):
        if ch == "'" and not in_double:
            in_single = not in_single
            continue
        if ch == '"' and not in_single:
            in_double = not in_double
            continue
        if ch == "#" and not in_single and not in_double:
            return val[:i].rstrip()
    return val.rstrip()


def _parse_env_file(path: Path) -> None:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("could not read env file | path=%s | err=%s", path, e)
        return
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()
        k, v = line.split("=", 1)
        k = k.strip()
        v = _strip_inline_comment(v.strip())
        if len(v) >= 2 and v[0] == v[-1] and v[0] in ("'", '"'):
            v = v[1:-1]
        if k and k not in os.environ:
            os.environ[k] = v


def load_dotenv(path: str = ".env") -> Optional[str]:
    """
    Load KEY=VALUE pairs from the first .env file found: ENV_PATH when set,
    otherwise `path` (relative paths resolve against the working directory).

    Variables already present in the environment are never overwritten.
    Returns the file used, or None.
    """
    candidates: List[Path] = []
    override = os.getenv("ENV_PATH")
    if override:
        candidates.append(Path(override).expanduser())
    candidates.append(Path(path).expanduser())

    for c in candidates:
        c = c.resolve()
        if c.is_file():
            _parse_env_file(c)
            return str(c)
    return None


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise SystemExit(f"{name} must be an integer (got {raw!r}).")


@dataclass
class AppConfig:
    discogs_token: Optional[str] = None
    state_path: str = DEFAULT_STATE_PATH
    timeout_s: int = 30
    concurrency: int = 0
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls) -> "AppConfig":
        token = (os.getenv("DISCOGS_TOKEN") or os.getenv("VITE_DISCOGS_TOKEN") or "").strip() or None
        return cls(
            discogs_token=token,
            state_path=(os.getenv("DISCOGS_WATCHER_STATE") or "").strip() or DEFAULT_STATE_PATH,
            timeout_s=_env_int("DISCOGS_TIMEOUT", 30),
            concurrency=_env_int("DISCOGS_CONCURRENCY", 0),
            user_agent=(os.getenv("DISCOGS_USER_AGENT") or "").strip() or DEFAULT_USER_AGENT,
        )

    def with_settings(self, settings: Dict[str, Any]) -> "AppConfig":
        overrides: Dict[str, Any] = {}
        if "state_path" in settings:
            overrides["state_path"] = str(settings["state_path"])
        if "timeout" in settings:
            overrides["timeout_s"] = int(settings["timeout"])
        if "concurrency" in settings:
            overrides["concurrency"] = int(settings["concurrency"])
        return replace(self, **overrides) if overrides else self

    def validate(self) -> None:
        if self.timeout_s < 0:
            raise SystemExit("Timeout must be >= 0 (0 disables the timeout).")
        if self.concurrency < 0:
            raise SystemExit("Concurrency must be >= 0 (0 = one worker per release).")
        if not self.state_path.strip():
            raise SystemExit("State path must not be empty.")

    def describe(self) -> Dict[str, Any]:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["discogs_token"] = "(set)" if self.discogs_token else "(none)"
        return out


def load_settings(path: str) -> Dict[str, Any]:
    """
    Read an optional YAML settings file (view defaults and config overrides).
    Unknown keys are ignored with a warning.
    """
    p = Path(path)
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except FileNotFoundError as e:
        raise SystemExit(f"Settings file not found: {p}") from e
    except (OSError, yaml.YAMLError) as e:
        raise SystemExit(f"Failed to read settings file: {p} ({e})") from e
    if not isinstance(data, dict):
        raise SystemExit(f"Settings file must contain a mapping: {p}")
    logger.info("Loaded settings file: %s", p)

    out: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in SETTINGS_KEYS:
            logger.warning("ignoring unknown settings key | key=%s | file=%s", key, p)
            continue
        out[key] = value
    for key in ("timeout", "concurrency"):
        if key in out:
            try:
                out[key] = int(out[key])
            except (TypeError, ValueError):
                raise SystemExit(f"Settings '{key}' must be an integer (got {out[key]!r}).")
    if "only_in_stock" in out and not isinstance(out["only_in_stock"], bool):
        raise SystemExit("Settings 'only_in_stock' must be true or false.")
    return out
