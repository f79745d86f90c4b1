"""
Outcome AMM: prediction-market pools, outcome resolution and market lifecycle
"""

__version__ = "0.1.0"
