"""
Feed source API blueprint.

CRUD over feed sources plus per-source health and re-enabling. Sources
are deactivated rather than deleted so their content and error history
stay intact.
"""

from typing import Optional

from brief_aggregation.core.categorizer import FeedCategorizer, extract_domain, favicon_url_for
from brief_aggregation.core.factories import Components
from brief_aggregation.core.health import FeedHealthTracker
from brief_aggregation.logger import get_logger
from brief_aggregation.models import FeedSourceCreate, FeedSourceUpdate, SourceType
from brief_aggregation.storage.repositories import FeedSourceRepository
from brief_aggregation.web.blueprints.base import CRUDBlueprint
from brief_aggregation.web.serializers import (
    api_response,
    feed_health_to_dict,
    feed_source_to_dict,
    source_health_to_dict,
)

logger = get_logger(__name__)


def complete_source(
    categorizer: FeedCategorizer,
    url: str,
    source_type: str,
    name: Optional[str] = None,
    category: Optional[str] = None,
    favicon_url: Optional[str] = None,
) -> FeedSourceCreate:
    """Fill in name, category and favicon a caller left out.

    YouTube thumbnails are only known once the channel is resolved, so
    their favicon is backfilled by the first fetch.
    """
    name = name or extract_domain(url) or url
    if not category:
        category = categorizer.categorize(name, url).category
    if not favicon_url and source_type != SourceType.YOUTUBE.value:
        favicon_url = favicon_url_for(url)

    return FeedSourceCreate(
        url=url,
        name=name,
        type=source_type,
        category=category,
        favicon_url=favicon_url,
    )


class FeedBlueprint(CRUDBlueprint):
    """Blueprint for feed source operations."""

    def __init__(self, components: Components):
        super().__init__(components, url_prefix="/api/feeds")

    def _register_routes(self):
        super()._register_routes()
        self.blueprint.add_url_rule("/health", view_func=self._overall_health, methods=["GET"])
        self.blueprint.add_url_rule("/<int:id>/health", view_func=self._health, methods=["GET"])
        self.blueprint.add_url_rule("/<int:id>/enable", view_func=self._enable, methods=["POST"])

    def get_repository_class(self):
        return FeedSourceRepository

    def get_create_schema_class(self):
        return FeedSourceCreate

    def get_update_schema_class(self):
        return FeedSourceUpdate

    def get_resource_name(self) -> str:
        return "Feed source"

    def serialize(self, model, **kwargs) -> dict:
        return feed_source_to_dict(model)

    def check_exists(self, repository, item_data) -> bool:
        return repository.get_by_url(item_data.url) is not None

    def prepare_create(self, item_data: FeedSourceCreate) -> FeedSourceCreate:
        completed = complete_source(
            self.components.categorizer,
            item_data.url,
            item_data.type,
            name=item_data.name,
            category=item_data.category,
            favicon_url=item_data.favicon_url,
        )
        return completed.model_copy(update={"is_active": item_data.is_active})

    def delete_item(self, repository, item) -> None:
        repository.deactivate(item, reason="Removed via API")

    def toggle_item(self, repository, item) -> None:
        if item.is_active:
            repository.deactivate(item, reason="Disabled via API")
        else:
            repository.enable(item)

    def _health(self, id: int):
        """Recent errors of a source and whether they call for suspension."""
        with self.db_manager.session() as session:
            source = FeedSourceRepository(session).get_by_id(id)
            if not source:
                return self._not_found()

            tracker = FeedHealthTracker(session, self.components.pipeline.health_config)
            data = feed_health_to_dict(tracker.get_feed_health(source))

        return api_response(success=True, data=data)

    def _overall_health(self):
        with self.db_manager.session() as session:
            tracker = FeedHealthTracker(session, self.components.pipeline.health_config)
            data = source_health_to_dict(tracker.get_source_health())

        return api_response(success=True, data=data)

    def _enable(self, id: int):
        """Lift a suspension."""
        with self.db_manager.session() as session:
            repo = FeedSourceRepository(session)
            source = repo.get_by_id(id)
            if not source:
                return self._not_found()

            data = feed_source_to_dict(repo.enable(source))

        logger.info(f"Source {id} re-enabled via API")
        return api_response(success=True, data=data, message="Feed source enabled")
