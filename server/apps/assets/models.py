"""Database models for assets app."""

from typing import Any, Final, final, override

from django.conf import settings
from django.db import models

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_FOLDER_NAME_MAX_LENGTH: Final = 100
_TAG_NAME_MAX_LENGTH: Final = 50
_COLOR_MAX_LENGTH: Final = 7  # Hex color: #RRGGBB
_MIME_TYPE_MAX_LENGTH: Final = 255
_URL_MAX_LENGTH: Final = 1024

DEFAULT_FOLDER_COLOR: Final = '#3B82F6'
DEFAULT_TAG_COLOR: Final = '#9CA3AF'


def normalize_tag_name(name: str) -> str:
    """Normalize tag name for storage and comparison.

    Args:
        name: Raw tag name (e.g., ' Red ').

    Returns:
        Stripped, lowercase name (e.g., 'red').
    """
    return name.strip().lower()


@final
class Folder(models.Model):
    """Folder in the asset library.

    Folders form a forest: each folder has zero or one parent.
    The parent chain must never loop back to the folder itself;
    this is enforced by the folder operations, not the database.
    """

    name = models.CharField(max_length=_FOLDER_NAME_MAX_LENGTH)

    description = models.TextField(blank=True, default='')

    parent = models.ForeignKey(
        'self',
        on_delete=models.RESTRICT,
        related_name='children',
        null=True,
        blank=True,
        db_index=True,
    )

    color = models.CharField(
        max_length=_COLOR_MAX_LENGTH,
        default=DEFAULT_FOLDER_COLOR,
        help_text='Hex color code for UI display (e.g., #3B82F6)',
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='folders',
        db_index=True,
    )

    is_public = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering = ['name']

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.name


@final
class Tag(models.Model):
    """Label attached to assets.

    Tag names are globally unique and stored lowercase, so
    'Red' and 'red' name the same tag.
    """

    name = models.CharField(
        max_length=_TAG_NAME_MAX_LENGTH,
        unique=True,
    )

    color = models.CharField(
        max_length=_COLOR_MAX_LENGTH,
        default=DEFAULT_TAG_COLOR,
        help_text='Hex color code for UI display (e.g., #9CA3AF)',
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='tags',
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Tag'  # type: ignore[mutable-override]
        verbose_name_plural = 'Tags'  # type: ignore[mutable-override]
        ordering = ['name']

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.name

    @override
    def save(self, *args: Any, **kwargs: Any) -> None:
        """Normalize name before saving."""
        self.name = normalize_tag_name(self.name)
        super().save(*args, **kwargs)


@final
class Asset(models.Model):
    """File registered in the asset library.

    The file bytes live in external storage; the record only keeps
    the storage locator (``file_url``) and cached metadata.
    """

    class FileType(models.TextChoices):
        """Coarse classification of the stored file."""

        IMAGE = 'image', 'Image'
        PDF = 'pdf', 'PDF'
        VIDEO = 'video', 'Video'
        DOCUMENT = 'document', 'Document'
        SPREADSHEET = 'spreadsheet', 'Spreadsheet'
        PRESENTATION = 'presentation', 'Presentation'
        OTHER = 'other', 'Other'

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    description = models.TextField(blank=True, default='')

    file_url = models.CharField(
        max_length=_URL_MAX_LENGTH,
        help_text='Storage locator returned by the storage backend',
    )

    file_type = models.CharField(
        max_length=20,
        choices=FileType.choices,
        default=FileType.OTHER,
    )

    size_bytes = models.BigIntegerField(help_text='File size in bytes')

    mime_type = models.CharField(max_length=_MIME_TYPE_MAX_LENGTH)

    folder = models.ForeignKey(
        Folder,
        on_delete=models.RESTRICT,
        related_name='assets',
        null=True,
        blank=True,
        db_index=True,
    )

    tags = models.ManyToManyField(
        Tag,
        related_name='assets',
        blank=True,
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='assets',
        db_index=True,
    )

    thumbnail_url = models.CharField(
        max_length=_URL_MAX_LENGTH,
        null=True,
        blank=True,
    )

    downloads = models.PositiveIntegerField(default=0)
    views = models.PositiveIntegerField(default=0)

    is_public = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Asset'  # type: ignore[mutable-override]
        verbose_name_plural = 'Assets'  # type: ignore[mutable-override]
        ordering = ['-created_at']

        indexes = [
            # Optimize folder listing queries
            models.Index(
                fields=['folder', '-created_at'],
                name='assets_folder_recent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner.username}:{self.name}'
