"""
Golden Record Simulator

Simulates how a Marketing Data Foundation cleans, links and unifies
per-source customer records into Golden Record profiles.
"""

__version__ = "0.1.0"
