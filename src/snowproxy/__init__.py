"""
snowproxy - metadata-only proxy and object repository sync for the snow CLI.
"""

__version__ = "1.0.0"
