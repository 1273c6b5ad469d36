"""Tag Controllers."""

from __future__ import annotations

from litestar import Controller, delete, get, post, put
from litestar.di import Provide

from expense_tracker.domain.accounts.schemas import AuthenticatedUser
from expense_tracker.domain.expenses import urls
from expense_tracker.domain.expenses.deps import provide_tag_service
from expense_tracker.domain.expenses.schemas import TagCreate, TagModel, TagUpdate
from expense_tracker.domain.expenses.services import TagService


class TagController(Controller):
    """Controller for managing a user's tags."""

    tags = ["Tags"]

    dependencies = {"tag_service": Provide(provide_tag_service)}

    @get(path=urls.TAGS_BASE, operation_id="list_tags")
    async def list_tags(self, current_user: AuthenticatedUser, tag_service: TagService) -> list[TagModel]:
        """List all tags for the current user, ordered by name."""
        tags = await tag_service.list_tags(current_user.id)
        return [tag_service.to_schema(tag, schema_type=TagModel) for tag in tags]

    @post(path=urls.TAGS_BASE, operation_id="create_tag")
    async def create_tag(self, current_user: AuthenticatedUser, data: TagCreate, tag_service: TagService) -> TagModel:
        tag = await tag_service.create_tag(current_user.id, data.tag_name)
        return tag_service.to_schema(tag, schema_type=TagModel)

    @put(path=urls.TAG_DETAIL, operation_id="rename_tag")
    async def rename_tag(
        self,
        current_user: AuthenticatedUser,
        tag_id: int,
        data: TagUpdate,
        tag_service: TagService,
    ) -> TagModel:
        tag = await tag_service.rename_tag(tag_id, current_user.id, data.tag_name)
        return tag_service.to_schema(tag, schema_type=TagModel)

    @delete(path=urls.TAG_DETAIL, operation_id="delete_tag", status_code=200)
    async def delete_tag(self, current_user: AuthenticatedUser, tag_id: int, tag_service: TagService) -> TagModel:
        """Delete a tag; its expense links go with it."""
        tag = await tag_service.get_owned_tag(tag_id, current_user.id)
        deleted = tag_service.to_schema(tag, schema_type=TagModel)
        await tag_service.delete_tag_for_user(tag_id, current_user.id)
        return deleted
