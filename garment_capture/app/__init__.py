"""Operator-facing application layer."""

from .console import OperatorConsole
from .session import CaptureSession

__all__ = ["CaptureSession", "OperatorConsole"]
