"""Application bootstrap helpers for the Study Review project."""

from .runtime import bootstrap, build_service, prepare_database
from .settings import AppSettings

__all__ = ["bootstrap", "build_service", "prepare_database", "AppSettings"]
