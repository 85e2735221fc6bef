"""
Fetch trigger API blueprint.

``POST /fetch/<source_type>`` runs ingestion on demand. With
``feedSourceId`` and ``immediate`` set only that source is fetched;
``feedSourceId`` alone is acknowledged and left to the next cycle; no id
runs a cycle over every active source of the type.
"""

from flask import Blueprint, request

from brief_aggregation.core.factories import Components
from brief_aggregation.logger import get_logger
from brief_aggregation.models import SourceType
from brief_aggregation.web.serializers import api_response, ingest_result_to_dict

logger = get_logger(__name__)

SOURCE_TYPES = {source_type.value for source_type in SourceType}


class FetchBlueprint:
    """Blueprint for on-demand ingestion."""

    def __init__(self, components: Components):
        self.components = components
        self.blueprint = Blueprint("fetch", __name__, url_prefix="/fetch")
        self.blueprint.add_url_rule("/<source_type>", view_func=self._fetch, methods=["POST"])

    def _fetch(self, source_type: str):
        if source_type not in SOURCE_TYPES:
            return api_response(
                success=False,
                error=f"Unsupported source type: {source_type}",
                status=400,
            )

        data = request.get_json(silent=True) or {}
        feed_source_id = data.get("feedSourceId")
        immediate = bool(data.get("immediate"))

        if feed_source_id is not None:
            try:
                feed_source_id = int(feed_source_id)
            except (TypeError, ValueError):
                return api_response(success=False, error="feedSourceId must be an integer", status=400)

        pipeline = self.components.pipeline

        if feed_source_id is not None and not immediate:
            logger.info(f"Fetch of source {feed_source_id} deferred to the next {source_type} cycle")
            return api_response(
                success=True,
                data={"processed": 0, "newItems": 0, "feedSources": 0},
                message="Source will be fetched in the next cycle",
                status=202,
            )

        if feed_source_id is not None:
            result = pipeline.fetch_source(feed_source_id, source_type=source_type)
        else:
            result = pipeline.run_cycle(source_type)

        return api_response(success=True, data=ingest_result_to_dict(result))
