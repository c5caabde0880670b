"""Tuner engine loop and status derivation."""

from .scheduler import RepeatingTask
from .state_machine import TuningStateMachine
from .tuner_engine import TunerEngine

__all__ = ["RepeatingTask", "TuningStateMachine", "TunerEngine"]
