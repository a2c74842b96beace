"""
Shared logging and error utilities.
"""
