"""
ALM Test Reporter - publishes automated test results to an ALM server.
"""

__version__ = "1.0.0"
