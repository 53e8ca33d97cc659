"""taskgate - task orchestration and error aggregation for CI checks."""

__version__ = "0.1.0"
