"""
Web interface for brief aggregation.
"""

from brief_aggregation.web.app import create_app, get_components

__all__ = ["create_app", "get_components"]
