"""Student and creator dashboards."""

from .service import DashboardService


__all__ = ["DashboardService"]
