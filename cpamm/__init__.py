"""
cpamm: constant-product AMM engine for a two-asset token pool.
"""

__version__ = "0.1.0"
