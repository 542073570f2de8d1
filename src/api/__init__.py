"""API — HTTP слой сервиса (FastAPI)."""

from .app import Services, build_default_services, build_services, create_app

__all__ = [
    "Services",
    "build_services",
    "build_default_services",
    "create_app",
]
