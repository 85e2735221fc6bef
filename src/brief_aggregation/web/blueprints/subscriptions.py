"""
Subscription API blueprint.

Subscribing to a URL creates the feed source on first sight and fetches
it right away so the subscriber's next digest is not empty.
"""

from flask import Blueprint, request
from pydantic import ValidationError

from brief_aggregation.core.factories import Components
from brief_aggregation.logger import get_logger
from brief_aggregation.models import SubscriptionCreate
from brief_aggregation.storage.repositories import FeedSourceRepository, SubscriptionRepository
from brief_aggregation.web.blueprints.base import validation_message
from brief_aggregation.web.blueprints.feeds import complete_source
from brief_aggregation.web.serializers import (
    api_response,
    feed_source_to_dict,
    ingest_result_to_dict,
    subscription_to_dict,
)

logger = get_logger(__name__)


class SubscriptionBlueprint:
    """Blueprint for subscriber-to-source edges."""

    def __init__(self, components: Components):
        self.components = components
        self.db_manager = components.db_manager
        self.blueprint = Blueprint("subscriptions", __name__, url_prefix="/api/subscriptions")
        self._register_routes()

    def _register_routes(self):
        self.blueprint.add_url_rule("", view_func=self._create, methods=["POST"])
        self.blueprint.add_url_rule("/<subscriber_id>", view_func=self._list, methods=["GET"])
        self.blueprint.add_url_rule(
            "/<subscriber_id>/<int:feed_source_id>", view_func=self._delete, methods=["DELETE"]
        )

    def _create(self):
        """Subscribe to a source, creating and fetching it if new.

        Body: {subscriberId, url, type, name?}
        """
        data = request.get_json(silent=True)
        if not data:
            return api_response(success=False, error="Request body is empty", status=400)

        try:
            payload = SubscriptionCreate(**data)
        except ValidationError as e:
            return api_response(success=False, error=validation_message(e), status=400)

        url = payload.url.strip()
        created = False

        with self.db_manager.session() as session:
            sources = FeedSourceRepository(session)
            source = sources.get_by_url(url)
            if source is None:
                source = sources.create(
                    complete_source(self.components.categorizer, url, payload.type, name=payload.name)
                )
                created = True
                logger.info(f"Created {source.type} source {source.id} ({source.name}) for {url}")

            subscription = SubscriptionRepository(session).subscribe(payload.subscriber_id, source.id)
            body = {
                "subscription": subscription_to_dict(subscription),
                "feedSource": feed_source_to_dict(source),
                "created": created,
            }

        if created:
            result = self.components.pipeline.fetch_source(body["feedSource"]["id"])
            body["fetch"] = ingest_result_to_dict(result)

        return api_response(
            success=True,
            data=body,
            message="Subscribed",
            status=201 if created else 200,
        )

    def _list(self, subscriber_id: str):
        with self.db_manager.session() as session:
            sources = FeedSourceRepository(session).list_for_subscriber(subscriber_id, active_only=False)
            data = [feed_source_to_dict(source) for source in sources]

        return api_response(success=True, data=data)

    def _delete(self, subscriber_id: str, feed_source_id: int):
        with self.db_manager.session() as session:
            removed = SubscriptionRepository(session).unsubscribe(subscriber_id, feed_source_id)

        if not removed:
            return api_response(success=False, error="Subscription not found", status=404)

        logger.info(f"{subscriber_id} unsubscribed from source {feed_source_id}")
        return api_response(success=True, message="Unsubscribed")
