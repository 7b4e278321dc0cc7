"""Wash and dry program definitions."""
from dataclasses import dataclass


@dataclass(frozen=True)
class Program:
    """Catalog entry: a named cycle with a fixed duration."""
    id: str
    name: str
    duration: int  # minutes
    type: str  # "washer" | "dryer"


@dataclass(frozen=True)
class ProgramSnapshot:
    """Name and duration captured on the machine when a cycle starts."""
    name: str
    duration: int
