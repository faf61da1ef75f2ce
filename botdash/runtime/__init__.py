from .commands import CommandDispatcher
from .controller import DashboardController

__all__ = ["CommandDispatcher", "DashboardController"]
