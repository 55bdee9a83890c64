from .trigger_controller import TriggerController, TriggerRunResult, build_controller, get_controller

__all__ = ["TriggerController", "TriggerRunResult", "build_controller", "get_controller"]
