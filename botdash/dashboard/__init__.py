from .server import build_app, run_dashboard

__all__ = ["build_app", "run_dashboard"]
