"""Database module for the spin history."""
from .models import SpinRecord, EventRecord, SpinMode
from .repo import Database

__all__ = ["SpinRecord", "EventRecord", "SpinMode", "Database"]
