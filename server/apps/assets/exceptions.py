"""Exceptions for assets app.

Every error is scoped to a single operation and raised before
anything is written, so callers may translate them directly into
their own status representation.
"""

from collections.abc import Iterable


class AssetLibraryError(Exception):
    """Base class for asset library integrity errors."""


class NotFoundError(AssetLibraryError):
    """Raised when a referenced folder, tag or asset does not exist."""

    def __init__(self, entity: str, entity_id: int) -> None:
        """Initialize NotFoundError.

        Args:
            entity: Entity name (e.g., 'Folder').
            entity_id: ID that was looked up.
        """
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f'{entity} not found: ID={entity_id}')


class ConflictError(AssetLibraryError):
    """Raised on name collisions or deletes blocked by dependents."""

    def __init__(self, reason: str, count: int | None = None) -> None:
        """Initialize ConflictError.

        Args:
            reason: Human-readable explanation.
            count: Number of blocking dependents, if applicable.
        """
        self.reason = reason
        self.count = count
        super().__init__(reason)


class InvalidOperationError(AssetLibraryError):
    """Raised when a parent change would create a folder cycle."""

    def __init__(self, reason: str) -> None:
        """Initialize InvalidOperationError.

        Args:
            reason: Human-readable explanation.
        """
        self.reason = reason
        super().__init__(reason)


class InvalidReferenceError(AssetLibraryError):
    """Raised when asset metadata names a missing folder or tag."""

    def __init__(
        self,
        missing_folder_id: int | None = None,
        missing_tag_ids: Iterable[int] = (),
    ) -> None:
        """Initialize InvalidReferenceError.

        Args:
            missing_folder_id: Folder ID that does not exist.
            missing_tag_ids: Tag IDs that do not exist.
        """
        self.missing_folder_id = missing_folder_id
        self.missing_tag_ids = list(missing_tag_ids)

        problems = []
        if missing_folder_id is not None:
            problems.append(f'folder {missing_folder_id}')
        if self.missing_tag_ids:
            tag_list = ', '.join(str(tag_id) for tag_id in self.missing_tag_ids)
            problems.append(f'tags [{tag_list}]')
        super().__init__(
            'Invalid reference: {0} not found'.format(' and '.join(problems)),
        )
