"""Service Manager pages."""

from servicemanager.pages.service_manager import service_manager_page  # noqa: F401

__all__ = ["service_manager_page"]
