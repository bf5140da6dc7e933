"""Application bootstrap helpers for the Study SRS project."""

from .runtime import build_application, run_server
from .settings import AppSettings

__all__ = ["run_server", "build_application", "AppSettings"]
