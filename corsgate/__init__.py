"""
CORS Gate
=========
Cross-Origin Resource Sharing policy engine
"""

__version__ = "1.0.0"
