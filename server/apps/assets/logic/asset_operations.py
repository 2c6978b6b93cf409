"""Business logic for asset operations."""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Final, final

from django.conf import settings
from django.db import transaction
from django.db.models import F, Q, QuerySet

from server.apps.assets.exceptions import InvalidReferenceError, NotFoundError
from server.apps.assets.infrastructure.metadata import (
    classify_file_type,
    detect_mime_type,
)
from server.apps.assets.models import Asset, Folder, Tag

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS: Final = frozenset((
    'name',
    'description',
    'folder_id',
    'tag_ids',
    'is_public',
))

_SORTABLE_FIELDS: Final = frozenset((
    'created_at',
    'modified_at',
    'name',
    'size_bytes',
    'downloads',
    'views',
))


@final
@dataclass(frozen=True)
class AssetPage:
    """One page of an asset listing."""

    assets: list[Asset]
    total: int
    page: int
    total_pages: int


def _asset_queryset() -> QuerySet[Asset]:
    return Asset.objects.select_related(
        'folder',
        'owner',
    ).prefetch_related('tags')


def _get_asset(asset_id: int) -> Asset:
    try:
        return _asset_queryset().get(id=asset_id)
    except Asset.DoesNotExist as error:
        logger.warning('Asset not found: ID=%s', asset_id)
        raise NotFoundError('Asset', asset_id) from error


def get_asset(asset_id: int) -> Asset:
    """Get a single asset.

    Args:
        asset_id: Asset ID.

    Returns:
        Asset with folder, owner and tags loaded.

    Raises:
        NotFoundError: If asset doesn't exist.
    """
    return _get_asset(asset_id)


def validate_asset_references(
    folder_id: int | None = None,
    tag_ids: Iterable[int] | None = None,
) -> tuple[Folder | None, list[Tag]]:
    """Check that asset metadata only names existing folders and tags.

    Used by the asset create and update paths. Folders and tags are
    only read, never modified. Duplicate tag IDs are collapsed.

    Args:
        folder_id: Optional folder ID.
        tag_ids: Optional tag IDs.

    Returns:
        Tuple of resolved folder (or None) and tags in the given order.

    Raises:
        InvalidReferenceError: If the folder or any tag doesn't exist.
    """
    folder = None
    missing_folder_id = None
    if folder_id is not None:
        folder = Folder.objects.filter(id=folder_id).first()
        if folder is None:
            missing_folder_id = folder_id

    unique_tag_ids = list(dict.fromkeys(tag_ids or ()))
    found_tags = Tag.objects.in_bulk(unique_tag_ids)
    missing_tag_ids = [
        tag_id for tag_id in unique_tag_ids if tag_id not in found_tags
    ]

    if missing_folder_id is not None or missing_tag_ids:
        logger.warning(
            'Invalid asset references: folder=%s, tags=%s',
            missing_folder_id,
            missing_tag_ids,
        )
        raise InvalidReferenceError(missing_folder_id, missing_tag_ids)

    return folder, [found_tags[tag_id] for tag_id in unique_tag_ids]


def create_asset(  # noqa: WPS211
    owner: _User,
    name: str,
    file_url: str,
    size_bytes: int,
    mime_type: str = '',
    file_type: str | None = None,
    description: str = '',
    folder_id: int | None = None,
    tag_ids: Iterable[int] | None = None,
    thumbnail_url: str | None = None,
    is_public: bool = True,
) -> Asset:
    """Register a stored file as an asset.

    Args:
        owner: User uploading the asset.
        name: Display name.
        file_url: Storage locator of the uploaded file.
        size_bytes: File size in bytes.
        mime_type: MIME type, detected from ``file_url`` when empty.
        file_type: File classification, derived from the MIME type
            when omitted.
        description: Optional description.
        folder_id: Optional folder ID.
        tag_ids: Optional tag IDs.
        thumbnail_url: Optional thumbnail locator.
        is_public: Visibility flag.

    Returns:
        Created Asset with folder, owner and tags loaded.

    Raises:
        InvalidReferenceError: If the folder or any tag doesn't exist.
    """
    folder, tags = validate_asset_references(folder_id, tag_ids)
    mime_type = mime_type or detect_mime_type(file_url)

    with transaction.atomic():
        asset = Asset.objects.create(
            name=name,
            description=description,
            file_url=file_url,
            file_type=file_type or classify_file_type(mime_type),
            size_bytes=size_bytes,
            mime_type=mime_type,
            folder=folder,
            owner=owner,
            thumbnail_url=thumbnail_url,
            is_public=is_public,
        )
        asset.tags.set(tags)

    logger.info(
        'Asset created: %s (ID: %d, folder: %s, tags: %d)',
        asset.name,
        asset.id,
        folder_id,
        len(tags),
    )
    return _get_asset(asset.id)


def update_asset(asset_id: int, **changes: Any) -> Asset:
    """Update asset metadata.

    Only keys present in ``changes`` are modified; ``folder_id=None``
    moves the asset out of its folder and ``tag_ids=[]`` clears its tags.

    Args:
        asset_id: ID of asset to update.
        changes: Any of name, description, folder_id, tag_ids, is_public.

    Returns:
        Updated Asset with folder, owner and tags loaded.

    Raises:
        ValueError: If an unknown field is passed.
        NotFoundError: If asset doesn't exist.
        InvalidReferenceError: If the folder or any tag doesn't exist.
    """
    unknown = set(changes) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f'Cannot update asset fields: {sorted(unknown)}')

    tag_ids = changes.pop('tag_ids', None)
    folder_id = changes.get('folder_id')

    with transaction.atomic():
        asset = _get_asset(asset_id)
        _, tags = validate_asset_references(folder_id, tag_ids)

        for field_name, field_value in changes.items():
            setattr(asset, field_name, field_value)
        asset.save(update_fields=[*changes, 'modified_at'])

        if tag_ids is not None:
            asset.tags.set(tags)

    logger.info(
        'Asset updated: ID=%d, fields=%s, tags replaced=%s',
        asset_id,
        sorted(changes),
        tag_ids is not None,
    )
    return _get_asset(asset_id)


def delete_asset(asset_id: int) -> None:
    """Delete asset record.

    Storage cleanup of the file and thumbnail is handled by the
    post_delete signal handler in signals.py.

    Args:
        asset_id: ID of asset to delete.

    Raises:
        NotFoundError: If asset doesn't exist.
    """
    asset = _get_asset(asset_id)

    try:
        with transaction.atomic():
            asset.delete()
    except Exception:
        logger.exception('Failed to delete asset from database: ID=%d', asset_id)
        raise

    logger.info('Asset deleted: %s (ID: %d)', asset.name, asset_id)


def _increment_counter(asset_id: int, counter: str) -> int:
    updated = Asset.objects.filter(id=asset_id).update(
        **{counter: F(counter) + 1},
    )
    if not updated:
        logger.warning('Asset not found: ID=%s', asset_id)
        raise NotFoundError('Asset', asset_id)
    return Asset.objects.values_list(counter, flat=True).get(id=asset_id)


def record_download(asset_id: int) -> int:
    """Increment the download counter.

    Args:
        asset_id: Asset ID.

    Returns:
        New download count.

    Raises:
        NotFoundError: If asset doesn't exist.
    """
    return _increment_counter(asset_id, 'downloads')


def record_view(asset_id: int) -> int:
    """Increment the view counter.

    Args:
        asset_id: Asset ID.

    Returns:
        New view count.

    Raises:
        NotFoundError: If asset doesn't exist.
    """
    return _increment_counter(asset_id, 'views')


def _search_filter(query: str) -> Q:
    return Q(name__icontains=query) | Q(description__icontains=query)


def list_assets(  # noqa: WPS211
    folder_id: int | None = None,
    *,
    unfiled: bool = False,
    file_type: str | None = None,
    tag_ids: Iterable[int] | None = None,
    search: str | None = None,
    page: int = 1,
    per_page: int | None = None,
    order_by: str = '-created_at',
) -> AssetPage:
    """List assets with filtering and pagination.

    Args:
        folder_id: Only assets in this folder.
        unfiled: Only assets without a folder.
        file_type: Only assets of this file type.
        tag_ids: Only assets carrying any of these tags.
        search: Case-insensitive match on name or description.
        page: 1-based page number.
        per_page: Page size, defaults to ``settings.ASSETS_PAGE_SIZE``.
            Values below 1 are treated as 1.
        order_by: Sort field, prefixed with '-' for descending.

    Returns:
        AssetPage with the requested slice and totals.

    Raises:
        ValueError: If ``order_by`` names an unsortable field.
    """
    if order_by.lstrip('-') not in _SORTABLE_FIELDS:
        raise ValueError(f'Cannot sort assets by: {order_by}')
    if per_page is None:
        per_page = settings.ASSETS_PAGE_SIZE
    page = max(page, 1)
    per_page = max(per_page, 1)

    assets = _asset_queryset()
    if unfiled:
        assets = assets.filter(folder__isnull=True)
    elif folder_id is not None:
        assets = assets.filter(folder_id=folder_id)
    if file_type:
        assets = assets.filter(file_type=file_type)
    if tag_ids:
        assets = assets.filter(tags__id__in=list(tag_ids)).distinct()
    if search:
        assets = assets.filter(_search_filter(search))

    total = assets.count()
    offset = (page - 1) * per_page
    page_assets = list(assets.order_by(order_by, '-id')[offset:offset + per_page])

    logger.debug(
        'Listed assets: page %d, %d of %d',
        page,
        len(page_assets),
        total,
    )
    return AssetPage(
        assets=page_assets,
        total=total,
        page=page,
        total_pages=math.ceil(total / per_page),
    )


def search_assets(query: str, limit: int | None = None) -> list[Asset]:
    """Search assets by name or description.

    Args:
        query: Case-insensitive substring.
        limit: Maximum results, defaults to ``settings.ASSETS_SEARCH_LIMIT``.

    Returns:
        Matching assets, newest first.
    """
    if limit is None:
        limit = settings.ASSETS_SEARCH_LIMIT
    return list(_asset_queryset().filter(_search_filter(query))[:limit])
