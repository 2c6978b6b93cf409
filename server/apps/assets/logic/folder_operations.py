"""Business logic for folder tree operations."""

import logging
from collections import defaultdict, deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Final, final

from django.db import transaction
from django.db.models import Count, QuerySet

from server.apps.assets.exceptions import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
)
from server.apps.assets.models import DEFAULT_FOLDER_COLOR, Asset, Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS: Final = frozenset((
    'name',
    'description',
    'parent_id',
    'color',
    'is_public',
))


@final
@dataclass
class FolderNode:
    """Folder with its nested children, as produced by the tree builder."""

    folder: Folder
    children: list['FolderNode'] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize node and its subtree to plain data."""
        return {
            'id': self.folder.id,
            'name': self.folder.name,
            'color': self.folder.color,
            'parent_id': self.folder.parent_id,
            'children': [child.to_dict() for child in self.children],
        }


@final
@dataclass(frozen=True)
class FolderContents:
    """A folder with its direct assets and subfolders."""

    folder: Folder
    assets: list[Asset]
    subfolders: list[Folder]


def _folder_queryset() -> QuerySet[Folder]:
    return Folder.objects.select_related('parent', 'owner')


def _get_folder(folder_id: int) -> Folder:
    try:
        return _folder_queryset().get(id=folder_id)
    except Folder.DoesNotExist as error:
        logger.warning('Folder not found: ID=%s', folder_id)
        raise NotFoundError('Folder', folder_id) from error


def _parent_map() -> dict[int, int | None]:
    """Load the whole parent relation in a single query."""
    return dict(Folder.objects.values_list('id', 'parent_id'))


def _walk_ancestor_ids(
    folder_id: int,
    parent_map: dict[int, int | None],
) -> list[int]:
    """Return ancestor IDs of a folder, nearest first.

    The walk visits each folder at most once, so it terminates in at
    most ``len(parent_map)`` steps even if the stored data loops.

    Args:
        folder_id: Folder whose ancestors to collect.
        parent_map: Mapping of folder ID to parent ID.

    Returns:
        Ancestor IDs from the immediate parent up to the root.
    """
    ancestors: list[int] = []
    seen = {folder_id}
    current = parent_map.get(folder_id)

    while current is not None:
        if current in seen:
            logger.warning(
                'Cycle detected in folder tree at folder ID=%d',
                current,
            )
            break
        if current not in parent_map:
            # Dangling parent reference: treat as root
            break
        ancestors.append(current)
        seen.add(current)
        current = parent_map[current]

    return ancestors


def get_ancestors(folder_id: int) -> list[Folder]:
    """Get the ancestor chain of a folder.

    Args:
        folder_id: Folder ID.

    Returns:
        Folders from the immediate parent up to the root.

    Raises:
        NotFoundError: If folder doesn't exist.
    """
    parent_map = _parent_map()
    if folder_id not in parent_map:
        raise NotFoundError('Folder', folder_id)

    ancestor_ids = _walk_ancestor_ids(folder_id, parent_map)
    folders = Folder.objects.in_bulk(ancestor_ids)
    return [folders[ancestor_id] for ancestor_id in ancestor_ids]


def find_cycles() -> list[list[int]]:
    """Find parent chains that loop back on themselves.

    Folder operations never create cycles, but rows edited outside
    them (admin, raw SQL) can.

    Returns:
        Each cycle as a list of folder IDs, following parent links.
    """
    parent_map = _parent_map()
    finished: set[int] = set()
    cycles: list[list[int]] = []

    for start in parent_map:
        path: list[int] = []
        on_path: dict[int, int] = {}
        current: int | None = start
        while (
            current is not None
            and current in parent_map
            and current not in finished
        ):
            if current in on_path:
                cycles.append(path[on_path[current]:])
                break
            on_path[current] = len(path)
            path.append(current)
            current = parent_map[current]
        finished.update(path)

    return cycles


def _lock_folders(folder_ids: set[int]) -> None:
    """Take row locks on folders until the surrounding transaction ends."""
    list(
        Folder.objects.select_for_update().filter(
            id__in=folder_ids,
        ).order_by('id').values_list('id', flat=True),
    )


def _lock_move_chain(folder_id: int, parent_id: int) -> list[int]:
    """Lock a moved folder, its new parent and the parent's ancestors.

    Concurrent moves touching the same chain serialize on these locks,
    so two moves cannot each pass the cycle check and together store a
    loop. The chain is re-read after every round of locking until no
    unlocked folder remains in it.

    Args:
        folder_id: Folder being moved.
        parent_id: Proposed new parent ID.

    Returns:
        Ancestor IDs of the new parent, nearest first, read under lock.
    """
    locked: set[int] = set()
    while True:
        ancestor_ids = _walk_ancestor_ids(parent_id, _parent_map())
        pending = {folder_id, parent_id, *ancestor_ids} - locked
        if not pending:
            return ancestor_ids
        _lock_folders(pending)
        locked |= pending


def _check_new_parent(folder: Folder, parent_id: int) -> None:
    """Reject a parent change that would put the folder inside itself.

    Args:
        folder: Folder being moved.
        parent_id: Proposed new parent ID.

    Raises:
        InvalidOperationError: If parent is the folder or a descendant.
        NotFoundError: If the proposed parent doesn't exist.
    """
    if parent_id == folder.id:
        logger.warning('Rejected self-parenting for folder ID=%d', folder.id)
        raise InvalidOperationError('Folder cannot be its own parent')

    if not Folder.objects.filter(id=parent_id).exists():
        logger.warning('Parent folder not found: ID=%s', parent_id)
        raise NotFoundError('Folder', parent_id)

    if folder.id in _lock_move_chain(folder.id, parent_id):
        logger.warning(
            'Rejected move of folder ID=%d under its descendant ID=%d',
            folder.id,
            parent_id,
        )
        raise InvalidOperationError(
            'Folder cannot be moved into one of its own subfolders',
        )


def create_folder(  # noqa: WPS211
    owner: _User,
    name: str,
    description: str = '',
    parent_id: int | None = None,
    color: str | None = None,
    is_public: bool = True,
) -> Folder:
    """Create a folder, optionally under an existing parent.

    Args:
        owner: User creating the folder.
        name: Folder name.
        description: Optional description.
        parent_id: Optional parent folder ID (None creates a root).
        color: Optional hex color, defaults to '#3B82F6'.
        is_public: Visibility flag.

    Returns:
        Created Folder with parent and owner loaded.

    Raises:
        NotFoundError: If parent folder doesn't exist.
    """
    if parent_id is not None and not Folder.objects.filter(
        id=parent_id,
    ).exists():
        logger.warning('Parent folder not found: ID=%s', parent_id)
        raise NotFoundError('Folder', parent_id)

    folder = Folder.objects.create(
        name=name,
        description=description,
        parent_id=parent_id,
        color=color or DEFAULT_FOLDER_COLOR,
        owner=owner,
        is_public=is_public,
    )
    logger.info(
        'Folder created: %s (ID: %d, parent: %s)',
        folder.name,
        folder.id,
        parent_id,
    )
    return _get_folder(folder.id)


def update_folder(folder_id: int, **changes: Any) -> Folder:
    """Update folder fields.

    Only keys present in ``changes`` are modified, so passing
    ``parent_id=None`` moves the folder to the root.

    Args:
        folder_id: ID of folder to update.
        changes: Any of name, description, parent_id, color, is_public.

    Returns:
        Updated Folder with parent and owner loaded.

    Raises:
        ValueError: If an unknown field is passed.
        NotFoundError: If folder or new parent doesn't exist.
        InvalidOperationError: If the new parent would create a cycle.
    """
    unknown = set(changes) - _UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f'Cannot update folder fields: {sorted(unknown)}')

    with transaction.atomic():
        folder = _get_folder(folder_id)

        new_parent_id = changes.get('parent_id', folder.parent_id)
        if new_parent_id is not None and new_parent_id != folder.parent_id:
            _check_new_parent(folder, new_parent_id)

        for field_name, field_value in changes.items():
            setattr(folder, field_name, field_value)
        folder.save(update_fields=[*changes, 'modified_at'])

    logger.info(
        'Folder updated: ID=%d, fields=%s',
        folder_id,
        sorted(changes),
    )
    return _get_folder(folder_id)


def delete_folder(folder_id: int) -> None:
    """Delete an empty folder.

    A folder is deleted only when no asset and no child folder
    references it. Nothing is modified when the delete is rejected.

    Args:
        folder_id: ID of folder to delete.

    Raises:
        NotFoundError: If folder doesn't exist.
        ConflictError: If folder still has assets or subfolders.
    """
    with transaction.atomic():
        folder = _get_folder(folder_id)

        asset_count = Asset.objects.filter(folder_id=folder_id).count()
        if asset_count > 0:
            logger.warning(
                'Rejected delete of folder ID=%d: %d assets',
                folder_id,
                asset_count,
            )
            raise ConflictError(
                f'Cannot delete folder with {asset_count} assets. '
                'Please move or delete assets first.',
                count=asset_count,
            )

        subfolder_count = Folder.objects.filter(parent_id=folder_id).count()
        if subfolder_count > 0:
            logger.warning(
                'Rejected delete of folder ID=%d: %d subfolders',
                folder_id,
                subfolder_count,
            )
            raise ConflictError(
                f'Cannot delete folder with {subfolder_count} subfolders. '
                'Please delete subfolders first.',
                count=subfolder_count,
            )

        folder.delete()

    logger.info('Folder deleted: %s (ID: %d)', folder.name, folder_id)


def list_folders(
    parent_id: int | None = None,
    *,
    roots_only: bool = False,
) -> QuerySet[Folder]:
    """List folders annotated with ``asset_count``, ordered by name.

    Args:
        parent_id: Only list direct children of this folder.
        roots_only: Only list folders without a parent.

    Returns:
        QuerySet of Folder objects.
    """
    folders = _folder_queryset().annotate(asset_count=Count('assets'))
    if roots_only:
        folders = folders.filter(parent__isnull=True)
    elif parent_id is not None:
        folders = folders.filter(parent_id=parent_id)
    return folders.order_by('name')


def get_folder_with_contents(folder_id: int) -> FolderContents:
    """Get folder with its direct assets and subfolders.

    Args:
        folder_id: Folder ID.

    Returns:
        FolderContents with assets newest first and subfolders by name.

    Raises:
        NotFoundError: If folder doesn't exist.
    """
    folder = _get_folder(folder_id)
    assets = Asset.objects.filter(
        folder_id=folder_id,
    ).select_related('owner').prefetch_related('tags').order_by('-created_at')
    subfolders = Folder.objects.filter(parent_id=folder_id).order_by('name')

    return FolderContents(
        folder=folder,
        assets=list(assets),
        subfolders=list(subfolders),
    )


def build_folder_tree(folders: Iterable[Folder]) -> list[FolderNode]:
    """Assemble a folder forest from a flat collection.

    Folders are indexed by parent ID once, then nodes are attached
    breadth-first starting from the roots. Folders whose parent is not
    in the collection are unreachable and left out, as are folders
    caught in a parent cycle. Each folder is placed at most once.

    Args:
        folders: Flat collection of folders.

    Returns:
        Root nodes ordered by name, each with nested children.
    """
    children_by_parent: defaultdict[int | None, list[Folder]] = defaultdict(
        list,
    )
    for folder in folders:
        children_by_parent[folder.parent_id].append(folder)
    for siblings in children_by_parent.values():
        siblings.sort(key=lambda sibling: sibling.name)

    roots = [FolderNode(folder) for folder in children_by_parent[None]]
    placed = {node.folder.id for node in roots}
    pending = deque(roots)

    while pending:
        node = pending.popleft()
        for child in children_by_parent.get(node.folder.id, ()):
            if child.id in placed:
                continue
            placed.add(child.id)
            child_node = FolderNode(child)
            node.children.append(child_node)
            pending.append(child_node)

    return roots


def get_folder_tree() -> list[FolderNode]:
    """Build the full folder hierarchy.

    Returns:
        Root nodes ordered by name, each with nested children.
    """
    folders = list(Folder.objects.order_by('name'))
    logger.debug('Building folder tree from %d folders', len(folders))
    return build_folder_tree(folders)
