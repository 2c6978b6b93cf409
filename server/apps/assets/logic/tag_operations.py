"""Business logic for tag operations."""

import logging
from dataclasses import dataclass
from typing import Any, final

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, QuerySet

from server.apps.assets.exceptions import ConflictError, NotFoundError
from server.apps.assets.models import (
    DEFAULT_TAG_COLOR,
    Asset,
    Tag,
    normalize_tag_name,
)

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


@final
@dataclass(frozen=True)
class TagContents:
    """A tag with the assets carrying it."""

    tag: Tag
    assets: list[Asset]


def _get_tag(tag_id: int) -> Tag:
    try:
        return Tag.objects.select_related('owner').get(id=tag_id)
    except Tag.DoesNotExist as error:
        logger.warning('Tag not found: ID=%s', tag_id)
        raise NotFoundError('Tag', tag_id) from error


def _ensure_name_available(name: str) -> None:
    if Tag.objects.filter(name=name).exists():
        logger.warning('Tag name already taken: %s', name)
        raise ConflictError('Tag with this name already exists')


def create_tag(owner: _User, name: str, color: str | None = None) -> Tag:
    """Create a tag with a case-insensitively unique name.

    Args:
        owner: User creating the tag.
        name: Tag name, stored lowercase.
        color: Optional hex color, defaults to '#9CA3AF'.

    Returns:
        Created Tag.

    Raises:
        ConflictError: If a tag with the same name already exists.
    """
    normalized = normalize_tag_name(name)
    _ensure_name_available(normalized)

    try:
        with transaction.atomic():
            tag = Tag.objects.create(
                name=normalized,
                color=color or DEFAULT_TAG_COLOR,
                owner=owner,
            )
    except IntegrityError as error:
        # Lost a race against a concurrent create
        logger.warning('Concurrent create of tag name: %s', normalized)
        raise ConflictError('Tag with this name already exists') from error

    logger.info('Tag created: %s (ID: %d)', tag.name, tag.id)
    return tag


def update_tag(
    tag_id: int,
    name: str | None = None,
    color: str | None = None,
) -> Tag:
    """Rename and/or recolor a tag.

    Uniqueness is only re-checked when the normalized name actually
    changes, so renaming 'Red' to 'red' never conflicts with itself.

    Args:
        tag_id: ID of tag to update.
        name: Optional new name.
        color: Optional new hex color.

    Returns:
        Updated Tag.

    Raises:
        NotFoundError: If tag doesn't exist.
        ConflictError: If the new name belongs to another tag.
    """
    tag = _get_tag(tag_id)

    if name:
        normalized = normalize_tag_name(name)
        if normalized != tag.name:
            _ensure_name_available(normalized)
        tag.name = normalized
    if color:
        tag.color = color

    try:
        with transaction.atomic():
            tag.save(update_fields=['name', 'color', 'modified_at'])
    except IntegrityError as error:
        logger.warning('Concurrent rename to tag name: %s', tag.name)
        raise ConflictError('Tag with this name already exists') from error

    logger.info('Tag updated: %s (ID: %d)', tag.name, tag_id)
    return tag


def delete_tag(tag_id: int) -> None:
    """Delete a tag and detach it from every asset.

    Detaching happens before the tag row is removed, and both steps
    share one transaction. A second call for the same ID raises
    NotFoundError without side effects.

    Args:
        tag_id: ID of tag to delete.

    Raises:
        NotFoundError: If tag doesn't exist.
    """
    with transaction.atomic():
        tag = _get_tag(tag_id)

        detached, _ = Asset.tags.through.objects.filter(tag_id=tag_id).delete()
        tag.delete()

    logger.info(
        'Tag deleted: %s (ID: %d, detached from %d assets)',
        tag.name,
        tag_id,
        detached,
    )


def list_tags() -> QuerySet[Tag]:
    """List tags annotated with ``asset_count``, ordered by name.

    Returns:
        QuerySet of Tag objects.
    """
    return Tag.objects.select_related('owner').annotate(
        asset_count=Count('assets'),
    ).order_by('name')


def popular_tags(limit: int | None = None) -> list[Tag]:
    """List the most used tags.

    Ties keep the name order of ``list_tags``.

    Args:
        limit: Maximum number of tags, defaults to
            ``settings.ASSETS_POPULAR_TAGS_LIMIT``.

    Returns:
        Tags ordered by ``asset_count`` descending.
    """
    if limit is None:
        limit = settings.ASSETS_POPULAR_TAGS_LIMIT
    return list(list_tags().order_by('-asset_count', 'name')[:limit])


def get_tag_with_assets(tag_id: int) -> TagContents:
    """Get a tag together with the assets carrying it.

    Args:
        tag_id: Tag ID.

    Returns:
        TagContents with assets newest first.

    Raises:
        NotFoundError: If tag doesn't exist.
    """
    tag = _get_tag(tag_id)
    assets = tag.assets.select_related(
        'folder',
        'owner',
    ).order_by('-created_at')
    return TagContents(tag=tag, assets=list(assets))
