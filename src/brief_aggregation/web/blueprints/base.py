"""
Base CRUD blueprint for common API endpoint patterns.

Subclasses name a repository, the pydantic schemas and a serializer type;
the base class registers list/get/create/update/delete/toggle routes.
"""

from abc import ABC, abstractmethod
from typing import Any, TypeVar

from flask import Blueprint, request
from pydantic import ValidationError

from brief_aggregation.core.factories import Components
from brief_aggregation.logger import get_logger
from brief_aggregation.web.serializers import SerializerRegistry, api_response

logger = get_logger(__name__)

ModelType = TypeVar("ModelType")


def validation_message(error: ValidationError) -> str:
    """Flatten pydantic errors into one line."""
    return "; ".join(
        f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in error.errors()
    )


class CRUDBlueprint(ABC):
    """Base CRUD blueprint with common endpoints.

    Subclasses must implement the abstract methods to provide the specific
    repository, schema classes and resource name.
    """

    def __init__(self, components: Components, url_prefix: str):
        """Initialize the CRUD blueprint.

        Args:
            components: Wired application components
            url_prefix: URL prefix for all routes in this blueprint
        """
        self.components = components
        self.db_manager = components.db_manager
        self.blueprint = Blueprint(
            self._get_blueprint_name(),
            self.__class__.__name__,
            url_prefix=url_prefix,
        )
        self._register_routes()

    def _get_blueprint_name(self) -> str:
        return self.__class__.__name__.replace("Blueprint", "").lower()

    def _register_routes(self):
        """Register all CRUD routes on the blueprint."""
        self.blueprint.add_url_rule("", view_func=self._list, methods=["GET"])
        self.blueprint.add_url_rule("/<int:id>", view_func=self._get_by_id, methods=["GET"])
        self.blueprint.add_url_rule("", view_func=self._create, methods=["POST"])
        self.blueprint.add_url_rule("/<int:id>", view_func=self._update, methods=["PUT"])
        self.blueprint.add_url_rule("/<int:id>", view_func=self._delete, methods=["DELETE"])
        self.blueprint.add_url_rule("/<int:id>/toggle", view_func=self._toggle, methods=["PATCH", "POST"])

    @abstractmethod
    def get_repository_class(self) -> type:
        """Repository class for this resource."""

    @abstractmethod
    def get_create_schema_class(self) -> type:
        """Pydantic create schema class."""

    @abstractmethod
    def get_update_schema_class(self) -> type:
        """Pydantic update schema class."""

    @abstractmethod
    def get_resource_name(self) -> str:
        """Resource name used in messages (e.g. "Feed source")."""

    def get_model_type(self) -> str:
        """Model type identifier in SerializerRegistry."""
        return self.get_resource_name().lower().replace(" ", "_")

    def serialize(self, model: ModelType, **kwargs) -> dict:
        return SerializerRegistry.serialize(self.get_model_type(), model, **kwargs)

    def list_items(self, repository) -> list:
        """Rows returned by the list route."""
        return repository.list(limit=1000)

    def check_exists(self, repository, item_data: Any) -> bool:
        """Whether the resource about to be created already exists."""
        return False

    def prepare_create(self, item_data: Any) -> Any:
        """Hook to fill derived fields before insertion."""
        return item_data

    def after_create(self, item: ModelType) -> None:
        """Hook run after the creating session committed."""

    def delete_item(self, repository, item: ModelType) -> None:
        repository.delete(item)

    def toggle_item(self, repository, item: ModelType) -> None:
        item.is_active = not item.is_active

    def _not_found(self):
        return api_response(success=False, error=f"{self.get_resource_name()} not found", status=404)

    def _list(self):
        with self.db_manager.session() as session:
            repo = self.get_repository_class()(session)
            data = [self.serialize(item) for item in self.list_items(repo)]

        return api_response(success=True, data=data)

    def _get_by_id(self, id: int):
        with self.db_manager.session() as session:
            item = self.get_repository_class()(session).get_by_id(id)
            if not item:
                return self._not_found()
            data = self.serialize(item)

        return api_response(success=True, data=data)

    def _create(self):
        """Create a new resource."""
        data = request.get_json(silent=True)
        if not data:
            return api_response(success=False, error="Request body is empty", status=400)

        try:
            item_data = self.get_create_schema_class()(**data)
        except ValidationError as e:
            return api_response(success=False, error=validation_message(e), status=400)

        with self.db_manager.session() as session:
            repo = self.get_repository_class()(session)
            if self.check_exists(repo, item_data):
                return api_response(
                    success=False,
                    error=f"{self.get_resource_name()} already exists",
                    status=409,
                )

            item = repo.create(self.prepare_create(item_data))
            body = self.serialize(item)

        self.after_create(item)
        logger.info(f"Created {self.get_resource_name()} {body.get('id')}")
        return api_response(
            success=True,
            data=body,
            message=f"{self.get_resource_name()} created",
            status=201,
        )

    def _update(self, id: int):
        data = request.get_json(silent=True) or {}
        try:
            item_data = self.get_update_schema_class()(**data)
        except ValidationError as e:
            return api_response(success=False, error=validation_message(e), status=400)

        with self.db_manager.session() as session:
            repo = self.get_repository_class()(session)
            item = repo.get_by_id(id)
            if not item:
                return self._not_found()

            body = self.serialize(repo.update(item, item_data))

        return api_response(success=True, data=body, message=f"{self.get_resource_name()} updated")

    def _delete(self, id: int):
        with self.db_manager.session() as session:
            repo = self.get_repository_class()(session)
            item = repo.get_by_id(id)
            if not item:
                return self._not_found()
            self.delete_item(repo, item)

        return api_response(success=True, message=f"{self.get_resource_name()} deleted")

    def _toggle(self, id: int):
        """Flip the active flag of a resource."""
        with self.db_manager.session() as session:
            repo = self.get_repository_class()(session)
            item = repo.get_by_id(id)
            if not item:
                return self._not_found()

            self.toggle_item(repo, item)
            session.flush()
            session.refresh(item)
            body = self.serialize(item)

        return api_response(success=True, data=body, message=f"{self.get_resource_name()} updated")
