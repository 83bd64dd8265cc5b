"""
achievement-zk: privacy-preserving achievement claims.

⚠️  EXPERIMENTAL - requires crypto review before production use
"""

__version__ = "0.1.0"
