"""Adapters for the external tools taskgate drives.

Each adapter is a callable taking the matched source files and yielding
``UnitResult`` values; tool-level failures are raised as ``ToolError``.
"""

from taskgate.tools.complexity import ComplexityReporter
from taskgate.tools.coverage import CoverageRunner, ThresholdEnforcer
from taskgate.tools.lint import LintEngine
from taskgate.tools.style import StyleCompiler
from taskgate.tools.testing import TestRunner

__all__ = [
    "ComplexityReporter",
    "CoverageRunner",
    "LintEngine",
    "StyleCompiler",
    "TestRunner",
    "ThresholdEnforcer",
]
