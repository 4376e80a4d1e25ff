"""
Interface module - Command-line entry points.
"""
