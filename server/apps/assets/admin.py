"""Django admin configuration for assets app."""


from django.contrib import admin
from django.db.models import Count, QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from server.apps.assets.models import Asset, Folder, Tag


def _color_swatch(color: str) -> str:
    return format_html(
        '<span style="display:inline-block;width:12px;height:12px;'
        'background:{};border-radius:2px;"></span> {}',
        color,
        color,
    )


@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin[Folder]):
    """Admin interface for Folder model."""

    list_display = [
        'name',
        'parent',
        'color_display',
        'asset_count',
        'owner',
        'is_public',
        'created_at',
    ]

    list_filter = ['is_public', 'owner']

    search_fields = ['name', 'description']

    readonly_fields = ['created_at', 'modified_at']

    def color_display(self, obj: Folder) -> str:
        """Display color as a swatch.

        Args:
            obj: Folder instance.

        Returns:
            HTML swatch with hex code.
        """
        return _color_swatch(obj.color)
    color_display.short_description = 'Color'  # type: ignore[attr-defined]

    def asset_count(self, obj: Folder) -> int:
        """Display number of assets in the folder.

        Args:
            obj: Folder instance annotated by get_queryset.

        Returns:
            Asset count.
        """
        return obj.asset_count  # type: ignore[attr-defined]
    asset_count.short_description = 'Assets'  # type: ignore[attr-defined]
    asset_count.admin_order_field = 'asset_count'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[Folder]:
        """Annotate asset counts and load related objects.

        Args:
            request: HTTP request.

        Returns:
            Annotated QuerySet.
        """
        return super().get_queryset(request).select_related(
            'parent',
            'owner',
        ).annotate(asset_count=Count('assets'))


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin[Tag]):
    """Admin interface for Tag model."""

    list_display = ['name', 'color_display', 'asset_count', 'owner', 'created_at']

    search_fields = ['name']

    readonly_fields = ['created_at', 'modified_at']

    def color_display(self, obj: Tag) -> str:
        """Display color as a swatch."""
        return _color_swatch(obj.color)
    color_display.short_description = 'Color'  # type: ignore[attr-defined]

    def asset_count(self, obj: Tag) -> int:
        """Display number of assets carrying the tag."""
        return obj.asset_count  # type: ignore[attr-defined]
    asset_count.short_description = 'Assets'  # type: ignore[attr-defined]
    asset_count.admin_order_field = 'asset_count'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[Tag]:
        """Annotate asset counts."""
        return super().get_queryset(request).select_related(
            'owner',
        ).annotate(asset_count=Count('assets'))


@admin.register(Asset)
class AssetAdmin(admin.ModelAdmin[Asset]):
    """Admin interface for Asset model."""

    list_display = [
        'name',
        'file_type',
        'folder',
        'size_display',
        'owner',
        'downloads',
        'views',
        'created_at',
    ]

    list_filter = [
        'file_type',
        'is_public',
        'created_at',
    ]

    search_fields = ['name', 'description', 'file_url']

    readonly_fields = [
        'file_url',
        'size_bytes',
        'mime_type',
        'downloads',
        'views',
        'created_at',
        'modified_at',
    ]

    filter_horizontal = ['tags']

    fieldsets = (
        ('Asset Information', {
            'fields': ('name', 'description', 'owner', 'is_public'),
        }),
        ('File', {
            'fields': (
                'file_url',
                'thumbnail_url',
                'file_type',
                'size_bytes',
                'mime_type',
            ),
        }),
        ('Organization', {
            'fields': ('folder', 'tags'),
        }),
        ('Statistics', {
            'fields': ('downloads', 'views'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'modified_at'),
        }),
    )

    def size_display(self, obj: Asset) -> str:
        """Display file size in human-readable format.

        Args:
            obj: Asset instance.

        Returns:
            Formatted size string (e.g., '1.5 MB', '234 KB').
        """
        size_bytes = obj.size_bytes

        # Convert to appropriate unit
        if size_bytes < 1024:
            return f'{size_bytes} B'
        if size_bytes < 1024 * 1024:  # noqa: WPS531
            return f'{size_bytes / 1024:.1f} KB'
        if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
            return f'{size_bytes / (1024 * 1024):.1f} MB'
        return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[Asset]:
        """Optimize queryset with select_related."""
        return super().get_queryset(request).select_related('folder', 'owner')
