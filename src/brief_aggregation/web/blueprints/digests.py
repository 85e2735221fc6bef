"""
Digest API blueprint.

Reading, generating and listing a subscriber's daily digests.
"""

from datetime import date

from flask import Blueprint, request

from brief_aggregation.core.digest_store import DigestStoreError
from brief_aggregation.core.factories import Components
from brief_aggregation.logger import get_logger
from brief_aggregation.web.serializers import api_response, schema_to_dict

logger = get_logger(__name__)

NO_DIGEST = "no digest"


def parse_date(value: str):
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class DigestBlueprint:
    """Blueprint for digest operations."""

    def __init__(self, components: Components):
        self.components = components
        self.blueprint = Blueprint("digests", __name__, url_prefix="/api/digests")
        self._register_routes()

    def _register_routes(self):
        self.blueprint.add_url_rule("/<subscriber_id>", view_func=self._list, methods=["GET"])
        self.blueprint.add_url_rule("/<subscriber_id>/stats", view_func=self._stats, methods=["GET"])
        self.blueprint.add_url_rule("/<subscriber_id>/<day>", view_func=self._get, methods=["GET"])
        self.blueprint.add_url_rule(
            "/<subscriber_id>/<day>/generate", view_func=self._generate, methods=["POST"]
        )
        self.blueprint.add_url_rule("/<subscriber_id>/<day>", view_func=self._delete, methods=["DELETE"])

    def _bad_date(self, day: str):
        return api_response(success=False, error=f"Invalid date: {day}", status=400)

    def _get(self, subscriber_id: str, day: str):
        """Stored digest, or an ad hoc one when filters are given.

        Query args: category, search, time_window_hours
        """
        digest_date = parse_date(day)
        if digest_date is None:
            return self._bad_date(day)

        time_window_hours = request.args.get("time_window_hours", type=int)
        if time_window_hours is not None and time_window_hours < 1:
            return api_response(success=False, error="time_window_hours must be positive", status=400)

        digest = self.components.digest_service.query_digest(
            subscriber_id,
            digest_date,
            category=request.args.get("category") or None,
            search=request.args.get("search") or None,
            time_window_hours=time_window_hours,
        )
        if digest is None:
            return api_response(success=False, error=NO_DIGEST, status=404)

        return api_response(success=True, data=schema_to_dict(digest))

    def _generate(self, subscriber_id: str, day: str):
        """Assemble and store the digest for one date."""
        digest_date = parse_date(day)
        if digest_date is None:
            return self._bad_date(day)

        body = request.get_json(silent=True) or {}
        preferences = body.get("preferences")
        if preferences is not None and not isinstance(preferences, dict):
            return api_response(success=False, error="preferences must be an object", status=400)

        try:
            digest = self.components.digest_service.generate_digest(
                subscriber_id, digest_date, preferences=preferences
            )
        except DigestStoreError as e:
            logger.error(f"Could not store digest for {subscriber_id} on {digest_date}: {e}")
            return api_response(success=False, error=str(e), status=500)

        if digest is None:
            return api_response(success=False, error=NO_DIGEST, status=404)

        return api_response(
            success=True,
            data=schema_to_dict(digest),
            message="Digest generated",
            status=201,
        )

    def _list(self, subscriber_id: str):
        limit = request.args.get("limit", 7, type=int)
        limit = max(1, min(limit, 100))

        try:
            digests = self.components.store.list_recent(subscriber_id, limit=limit)
        except DigestStoreError as e:
            return api_response(success=False, error=str(e), status=500)

        return api_response(success=True, data=[schema_to_dict(d) for d in digests])

    def _stats(self, subscriber_id: str):
        try:
            stats = self.components.store.get_stats(subscriber_id)
        except DigestStoreError as e:
            return api_response(success=False, error=str(e), status=500)

        return api_response(success=True, data=schema_to_dict(stats))

    def _delete(self, subscriber_id: str, day: str):
        digest_date = parse_date(day)
        if digest_date is None:
            return self._bad_date(day)

        store = self.components.store
        try:
            digest = store.get(subscriber_id, digest_date)
            deleted = digest is not None and store.delete(digest.id)
        except DigestStoreError as e:
            return api_response(success=False, error=str(e), status=500)

        if not deleted:
            return api_response(success=False, error=NO_DIGEST, status=404)
        return api_response(success=True, message="Digest deleted")
