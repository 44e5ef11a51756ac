"""Engine module for the poll loop and agent wiring."""

from parkcam.engine.agent import ParkcamAgent
from parkcam.engine.poll_loop import CycleOutcome, LoopState, PollLoop

__all__ = ["CycleOutcome", "LoopState", "ParkcamAgent", "PollLoop"]
