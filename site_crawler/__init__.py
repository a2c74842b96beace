"""
Concurrent same-site link crawler.
"""

__version__ = "1.0.0"
