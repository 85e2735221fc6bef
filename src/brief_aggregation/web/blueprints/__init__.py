"""
API blueprints for the web application.
"""

from brief_aggregation.web.blueprints.base import CRUDBlueprint
from brief_aggregation.web.blueprints.digests import DigestBlueprint
from brief_aggregation.web.blueprints.feeds import FeedBlueprint
from brief_aggregation.web.blueprints.fetch import FetchBlueprint
from brief_aggregation.web.blueprints.scheduler import SchedulerBlueprint
from brief_aggregation.web.blueprints.subscriptions import SubscriptionBlueprint

__all__ = [
    "CRUDBlueprint",
    "DigestBlueprint",
    "FeedBlueprint",
    "FetchBlueprint",
    "SchedulerBlueprint",
    "SubscriptionBlueprint",
]
