"""
Transport construction.
"""

from esresilience.connections.elasticsearch import create_client

__all__ = ["create_client"]
