from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .aws.regions import ALL_REGIONS
from .normalize.schema import DEFAULT_OUTPUT_NAME, DEFAULT_PAGE_SIZE

# --------
# Defaults
# --------
DEFAULT_WORKERS_REGION = 1
ALLOWED_CONFIG_KEYS = {
    "region",
    "outdir",
    "output_name",
    "page_size",
    "workers_region",
    "profile",
    "json_logs",
    "log_level",
    "log_file",
    "progress",
}
BOOL_CONFIG_KEYS = {"json_logs", "progress"}
INT_CONFIG_KEYS = {"page_size", "workers_region"}
PATH_CONFIG_KEYS = {"outdir", "log_file"}
STR_CONFIG_KEYS = {"region", "output_name", "profile", "log_level"}


@dataclass(frozen=True)
class RunConfig:
    # Selection
    region: Optional[str] = None  # catalog region or "all"

    # Output
    outdir: Path = field(default_factory=Path.cwd)
    output_name: str = DEFAULT_OUTPUT_NAME

    # Collection
    page_size: int = DEFAULT_PAGE_SIZE
    workers_region: int = DEFAULT_WORKERS_REGION

    # Auth
    profile: Optional[str] = None

    # Logging / UX
    json_logs: bool = False
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    progress: bool = False

    # Internal/derived
    collected_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )

    @property
    def output_path(self) -> Path:
        return self.outdir / self.output_name


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except Exception as e:
        raise ValueError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip().lower()
    if not raw:
        return None
    return raw in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Config field '{key}' must be a boolean")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ValueError(f"Config field '{key}' must be an integer")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS or value is None:
            continue
        if key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in INT_CONFIG_KEYS:
            normalized[key] = _coerce_int(key, value)
        elif key in PATH_CONFIG_KEYS:
            if not isinstance(value, (str, Path)):
                raise ValueError(f"Config field '{key}' must be a string path")
            normalized[key] = value
        elif key in STR_CONFIG_KEYS:
            if not isinstance(value, str):
                raise ValueError(f"Config field '{key}' must be a string")
            normalized[key] = value
    return normalized


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ec2-inv",
        description="Collect EC2 instance details from one or all regions into a JSON file",
    )
    parser.add_argument(
        "region",
        nargs="?",
        default=None,
        help=f"Region to query, or '{ALL_REGIONS}' for every catalog region",
    )
    parser.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
    parser.add_argument("--outdir", type=Path, default=None, help="Output directory (default: current directory)")
    parser.add_argument(
        "--output-name",
        default=None,
        help=f"Output file name (default: {DEFAULT_OUTPUT_NAME})",
    )
    parser.add_argument(
        "--page-size",
        type=int,
        default=None,
        help=f"MaxResults per describe_instances call (default {DEFAULT_PAGE_SIZE})",
    )
    parser.add_argument(
        "--workers-region",
        type=int,
        default=None,
        help=f"Max regions collected in parallel (default {DEFAULT_WORKERS_REGION}, sequential)",
    )
    parser.add_argument("--profile", default=None, help="AWS named profile")
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Enable JSON logs",
    )
    parser.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")
    parser.add_argument(
        "--progress",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Show a progress bar and run summary (rich)",
    )
    return parser


def load_run_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[list[str]] = None,
) -> RunConfig:
    """
    Build RunConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.

    The region selector is carried as given; it is validated before collection starts.
    """
    ns = args if args is not None else build_parser().parse_args(argv)

    base: Dict[str, Any] = {
        "region": None,
        "outdir": None,
        "output_name": DEFAULT_OUTPUT_NAME,
        "page_size": DEFAULT_PAGE_SIZE,
        "workers_region": DEFAULT_WORKERS_REGION,
        "profile": None,
        "json_logs": False,
        "log_level": "INFO",
        "log_file": None,
        "progress": False,
    }

    file_cfg: Dict[str, Any] = {}
    if getattr(ns, "config", None):
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "region": _env_str("EC2_INV_REGION"),
            "outdir": _env_str("EC2_INV_OUTDIR"),
            "output_name": _env_str("EC2_INV_OUTPUT_NAME"),
            "page_size": _env_int("EC2_INV_PAGE_SIZE"),
            "workers_region": _env_int("EC2_INV_WORKERS_REGION"),
            "profile": _env_str("EC2_INV_PROFILE") or _env_str("AWS_PROFILE"),
            "json_logs": _env_bool("EC2_INV_JSON_LOGS"),
            "log_level": _env_str("EC2_INV_LOG_LEVEL"),
            "log_file": _env_str("EC2_INV_LOG_FILE"),
            "progress": _env_bool("EC2_INV_PROGRESS"),
        }
    )

    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "region": getattr(ns, "region", None),
            "outdir": getattr(ns, "outdir", None),
            "output_name": getattr(ns, "output_name", None),
            "page_size": getattr(ns, "page_size", None),
            "workers_region": getattr(ns, "workers_region", None),
            "profile": getattr(ns, "profile", None),
            "json_logs": getattr(ns, "json_logs", None),
            "log_level": getattr(ns, "log_level", None),
            "log_file": getattr(ns, "log_file", None),
            "progress": getattr(ns, "progress", None),
        }
    )

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    page_size = int(merged["page_size"])
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    workers_region = int(merged["workers_region"])
    if workers_region < 1:
        raise ValueError("workers_region must be at least 1")

    profile = merged.get("profile")
    log_file = merged.get("log_file")
    return RunConfig(
        region=str(merged["region"]) if merged.get("region") else None,
        outdir=Path(merged["outdir"]) if merged.get("outdir") else Path.cwd(),
        output_name=str(merged.get("output_name") or DEFAULT_OUTPUT_NAME),
        page_size=page_size,
        workers_region=workers_region,
        profile=str(profile) if profile else None,
        json_logs=bool(merged["json_logs"]),
        log_level=(merged.get("log_level") or "INFO").upper(),
        log_file=Path(log_file) if log_file else None,
        progress=bool(merged["progress"]),
    )


def dump_config(cfg: RunConfig) -> Dict[str, Any]:
    return {
        "region": cfg.region,
        "outdir": str(cfg.outdir),
        "output_name": cfg.output_name,
        "page_size": cfg.page_size,
        "workers_region": cfg.workers_region,
        "profile": cfg.profile,
        "json_logs": cfg.json_logs,
        "log_level": cfg.log_level,
        "log_file": str(cfg.log_file) if cfg.log_file else None,
        "progress": cfg.progress,
        "collected_at": cfg.collected_at,
    }
