"""Project path configuration."""

from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = PROJECT_ROOT / "data"
OUTPUT_DIR = PROJECT_ROOT / "output"

__all__ = ["PROJECT_ROOT", "DATA_DIR", "OUTPUT_DIR"]
