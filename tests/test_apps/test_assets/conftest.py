"""Shared fixtures for assets app tests."""

import boto3
import pytest
from django.contrib.auth import get_user_model
from moto import mock_aws

from server.apps.assets.models import Asset, Folder, Tag

User = get_user_model()


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture(autouse=True)
def mock_s3():
    """Mock S3 service with asset-library bucket.

    Autouse: deleting an Asset always reaches the storage backend
    through the post_delete signal.

    Yields:
        boto3 S3 resource with asset-library bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket='asset-library')
        yield conn


@pytest.fixture
def make_folder(user):
    """Factory for folders owned by the test user.

    Returns:
        Callable creating a Folder.
    """
    def factory(name: str, parent: Folder | None = None) -> Folder:
        return Folder.objects.create(name=name, parent=parent, owner=user)
    return factory


@pytest.fixture
def make_tag(user):
    """Factory for tags owned by the test user.

    Returns:
        Callable creating a Tag.
    """
    def factory(name: str) -> Tag:
        return Tag.objects.create(name=name, owner=user)
    return factory


@pytest.fixture
def make_asset(user):
    """Factory for assets owned by the test user.

    Returns:
        Callable creating an Asset.
    """
    def factory(
        name: str = 'photo.jpg',
        folder: Folder | None = None,
        tags: tuple[Tag, ...] = (),
        **extra,
    ) -> Asset:
        asset = Asset.objects.create(
            name=name,
            file_url=f'{user.id}/{name}',
            file_type=extra.pop('file_type', Asset.FileType.IMAGE),
            size_bytes=extra.pop('size_bytes', 100),
            mime_type=extra.pop('mime_type', 'image/jpeg'),
            folder=folder,
            owner=user,
            **extra,
        )
        asset.tags.set(tags)
        return asset
    return factory
