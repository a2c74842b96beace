"""
Output rendering and interactive display.
"""

from .report_generator import ReportGenerator, OUTPUT_FORMATS

__all__ = [
    'ReportGenerator',
    'OUTPUT_FORMATS'
]
