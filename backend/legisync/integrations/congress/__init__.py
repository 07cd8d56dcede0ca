"""
Congress.gov API v3 integration.
"""

from legisync.integrations.congress.client import CongressClient
from legisync.integrations.congress.retry import RetryPolicy

__all__ = ["CongressClient", "RetryPolicy"]
