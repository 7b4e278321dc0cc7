"""Core services: machine store, lifecycle, completion scheduler, state view."""
from sudsify.core.completion_scheduler import CompletionScheduler
from sudsify.core.lifecycle import LifecycleController
from sudsify.core.machine_store import MachineStore
from sudsify.core.state_view import StateView

__all__ = ["CompletionScheduler", "LifecycleController", "MachineStore", "StateView"]
