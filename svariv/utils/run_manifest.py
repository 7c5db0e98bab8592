"""Run manifest utilities for reproducible SVAR-IV runs."""

from __future__ import annotations

import hashlib
import json
import platform
import subprocess
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import numpy as np


def _hash_config(config: Dict[str, Any]) -> str:
    payload = json.dumps(config, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def fingerprint_arrays(arrays: Iterable[np.ndarray]) -> str:
    """sha256 over the shapes and float64 bytes of the estimation inputs."""
    digest = hashlib.sha256()
    for arr in arrays:
        arr = np.ascontiguousarray(np.asarray(arr, dtype=float))
        digest.update(str(arr.shape).encode("utf-8"))
        digest.update(arr.tobytes())
    return digest.hexdigest()


def json_ready(value: Any) -> Any:
    """Recursively convert numpy scalars and map non-finite floats to None."""
    if isinstance(value, dict):
        return {str(k): json_ready(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_ready(v) for v in value]
    if isinstance(value, np.ndarray):
        return json_ready(value.tolist())
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and not np.isfinite(value):
        return None
    return value


def _git_commit() -> Optional[str]:
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return None


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def write_run_manifest(
    output_dir: Path,
    config: Dict[str, Any],
    extra: Optional[Dict[str, Any]] = None,
    data_fingerprint: Optional[str] = None,
) -> Path:
    """Write a run manifest JSON to output_dir."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    manifest = {
        "timestamp": _timestamp(),
        "python": platform.python_version(),
        "numpy": np.__version__,
        "platform": platform.platform(),
        "git_commit": _git_commit(),
        "config_hash": _hash_config(config),
        "config": config,
        "data_fingerprint": data_fingerprint,
        "argv": sys.argv,
    }
    if extra:
        manifest["extra"] = extra

    path = output_dir / "run_manifest.json"
    with open(path, "w") as f:
        json.dump(json_ready(manifest), f, indent=2, default=str, allow_nan=False)
    return path


def write_latest_pointer(
    outputs_dir: Path,
    run_id: str,
    output_root: Path,
    extra: Optional[Dict[str, Any]] = None,
) -> Path:
    """Write latest pointer for run-id based outputs."""
    outputs_dir = Path(outputs_dir)
    outputs_dir.mkdir(parents=True, exist_ok=True)
    payload = {
        "timestamp": _timestamp(),
        "run_id": run_id,
        "output_root": str(output_root),
    }
    if extra:
        payload["extra"] = extra

    path = outputs_dir / "latest.json"
    with open(path, "w") as f:
        json.dump(json_ready(payload), f, indent=2, default=str, allow_nan=False)
    return path
