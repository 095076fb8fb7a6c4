"""Controller package for nodewatch."""

from nodewatch.controller.watch_controller import ControllerState, WatchController

__all__ = ["ControllerState", "WatchController"]
