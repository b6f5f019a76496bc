"""Shared pytest configuration."""
import sys
from pathlib import Path

# Add backend and the test helpers to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))
sys.path.insert(0, str(Path(__file__).parent))
