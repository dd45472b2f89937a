"""Colony task engine: task lifecycle, logistics matching and a sandbox world."""

__version__ = "0.1.0"
