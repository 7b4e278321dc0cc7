"""Data models for machines, programs, usage records, and sessions."""
from sudsify.models.machine import Machine
from sudsify.models.program import Program, ProgramSnapshot
from sudsify.models.session import Session
from sudsify.models.usage import UsageRecord

__all__ = [
    "Machine",
    "Program",
    "ProgramSnapshot",
    "Session",
    "UsageRecord",
]
