"""Tests for folder tree operations business logic."""

from datetime import timedelta
from unittest import mock

import pytest
from django.utils import timezone

from server.apps.assets.exceptions import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
)
from server.apps.assets.logic import folder_operations
from server.apps.assets.logic.folder_operations import (
    build_folder_tree,
    create_folder,
    delete_folder,
    find_cycles,
    get_ancestors,
    get_folder_tree,
    get_folder_with_contents,
    list_folders,
    update_folder,
)
from server.apps.assets.models import Asset, Folder


@pytest.mark.django_db
class TestCreateFolder:
    """Tests for create_folder function."""

    def test_create_root_folder(self, user):
        """Test creating a folder without parent uses defaults."""
        folder = create_folder(user, 'Marketing')

        assert folder.id is not None
        assert folder.parent is None
        assert folder.owner == user
        assert folder.color == '#3B82F6'
        assert folder.is_public is True

    def test_create_child_folder(self, user, make_folder):
        """Test creating a folder under an existing parent."""
        parent = make_folder('Marketing')

        folder = create_folder(
            user,
            'Logos',
            description='Brand logos',
            parent_id=parent.id,
            color='#FF5733',
            is_public=False,
        )

        assert folder.parent == parent
        assert folder.description == 'Brand logos'
        assert folder.color == '#FF5733'
        assert folder.is_public is False

    def test_create_with_missing_parent(self, user):
        """Test creating under a nonexistent parent fails."""
        with pytest.raises(NotFoundError) as exc_info:
            create_folder(user, 'Orphan', parent_id=99999)

        assert exc_info.value.entity == 'Folder'
        assert exc_info.value.entity_id == 99999
        assert Folder.objects.count() == 0


@pytest.mark.django_db
class TestUpdateFolder:
    """Tests for update_folder function."""

    def test_update_fields(self, make_folder):
        """Test only given fields change."""
        folder = make_folder('Old')

        updated = update_folder(folder.id, name='New', color='#000000')

        assert updated.name == 'New'
        assert updated.color == '#000000'
        assert updated.description == ''

    def test_move_to_other_parent(self, make_folder):
        """Test re-parenting to an unrelated folder."""
        first = make_folder('First')
        second = make_folder('Second')
        child = make_folder('Child', parent=first)

        updated = update_folder(child.id, parent_id=second.id)

        assert updated.parent == second

    def test_move_to_root(self, make_folder):
        """Test parent_id=None detaches folder from its parent."""
        parent = make_folder('Parent')
        child = make_folder('Child', parent=parent)

        updated = update_folder(child.id, parent_id=None)

        assert updated.parent is None

    def test_self_parenting_rejected(self, make_folder):
        """Test folder cannot become its own parent."""
        folder = make_folder('Loop')

        with pytest.raises(InvalidOperationError):
            update_folder(folder.id, parent_id=folder.id)

        folder.refresh_from_db()
        assert folder.parent_id is None

    def test_direct_cycle_rejected(self, user):
        """Test parent cannot move under its own child."""
        parent = create_folder(user, 'Parent')
        child = create_folder(user, 'Child', parent_id=parent.id)

        with pytest.raises(InvalidOperationError):
            update_folder(parent.id, parent_id=child.id)

        parent.refresh_from_db()
        assert parent.parent_id is None

    def test_deep_cycle_rejected(self, make_folder):
        """Test folder cannot move under a grandchild."""
        top = make_folder('Top')
        middle = make_folder('Middle', parent=top)
        bottom = make_folder('Bottom', parent=middle)

        with pytest.raises(InvalidOperationError):
            update_folder(top.id, parent_id=bottom.id)

        top.refresh_from_db()
        assert top.parent_id is None

    def test_move_locks_whole_chain(self, make_folder):
        """Test a move locks the folder, new parent and its ancestors."""
        top = make_folder('Top')
        middle = make_folder('Middle', parent=top)
        moved = make_folder('Moved')

        with mock.patch.object(
            folder_operations,
            '_lock_folders',
            wraps=folder_operations._lock_folders,
        ) as lock:
            update_folder(moved.id, parent_id=middle.id)

        locked = set().union(*(call.args[0] for call in lock.call_args_list))
        assert locked == {moved.id, middle.id, top.id}
        moved.refresh_from_db()
        assert moved.parent_id == middle.id

    def test_rename_takes_no_locks(self, make_folder):
        """Test updates that keep the parent skip locking."""
        folder = make_folder('Folder')

        with mock.patch.object(folder_operations, '_lock_folders') as lock:
            update_folder(folder.id, name='Renamed')

        lock.assert_not_called()

    def test_missing_new_parent(self, make_folder):
        """Test moving under a nonexistent folder fails."""
        folder = make_folder('Folder')

        with pytest.raises(NotFoundError):
            update_folder(folder.id, parent_id=99999)

    def test_missing_folder(self, db):
        """Test updating a nonexistent folder fails."""
        with pytest.raises(NotFoundError):
            update_folder(99999, name='Ghost')

    def test_unknown_field(self, make_folder):
        """Test unknown fields are rejected."""
        folder = make_folder('Folder')

        with pytest.raises(ValueError, match='owner'):
            update_folder(folder.id, owner=None)


@pytest.mark.django_db
class TestDeleteFolder:
    """Tests for delete_folder function."""

    def test_delete_empty_folder(self, make_folder):
        """Test empty folder is deleted."""
        folder = make_folder('Empty')

        delete_folder(folder.id)

        assert not Folder.objects.filter(id=folder.id).exists()

    def test_delete_blocked_by_assets(self, make_folder, make_asset):
        """Test folder with assets is kept and count reported."""
        folder = make_folder('Photos')
        make_asset('a.jpg', folder=folder)
        make_asset('b.jpg', folder=folder)

        with pytest.raises(ConflictError) as exc_info:
            delete_folder(folder.id)

        assert exc_info.value.count == 2
        assert '2 assets' in exc_info.value.reason
        assert Folder.objects.filter(id=folder.id).exists()
        assert Asset.objects.filter(folder=folder).count() == 2

    def test_delete_blocked_by_subfolders(self, make_folder):
        """Test folder with subfolders is kept and count reported."""
        folder = make_folder('Parent')
        make_folder('Child', parent=folder)

        with pytest.raises(ConflictError) as exc_info:
            delete_folder(folder.id)

        assert exc_info.value.count == 1
        assert 'subfolders' in exc_info.value.reason
        assert Folder.objects.count() == 2

    def test_delete_missing_folder(self, db):
        """Test deleting a nonexistent folder fails."""
        with pytest.raises(NotFoundError):
            delete_folder(99999)


@pytest.mark.django_db
class TestListFolders:
    """Tests for list_folders function."""

    def test_list_all_ordered_by_name(self, make_folder, make_asset):
        """Test folders are ordered by name with asset counts."""
        beta = make_folder('beta')
        alpha = make_folder('alpha')
        make_folder('gamma', parent=alpha)
        make_asset('one.jpg', folder=beta)
        make_asset('two.jpg', folder=beta)

        folders = list(list_folders())

        assert [folder.name for folder in folders] == ['alpha', 'beta', 'gamma']
        counts = {folder.name: folder.asset_count for folder in folders}
        assert counts == {'alpha': 0, 'beta': 2, 'gamma': 0}

    def test_list_roots_only(self, make_folder):
        """Test roots_only excludes nested folders."""
        root = make_folder('root')
        make_folder('child', parent=root)

        folders = list(list_folders(roots_only=True))

        assert folders == [root]

    def test_list_children(self, make_folder):
        """Test parent_id filter returns direct children."""
        root = make_folder('root')
        child = make_folder('child', parent=root)
        make_folder('grandchild', parent=child)

        folders = list(list_folders(parent_id=root.id))

        assert folders == [child]


@pytest.mark.django_db
class TestGetFolderWithContents:
    """Tests for get_folder_with_contents function."""

    def test_contents_ordering(self, make_folder, make_asset):
        """Test assets newest first and subfolders by name."""
        folder = make_folder('Root')
        older = make_asset('older.jpg', folder=folder)
        newer = make_asset('newer.jpg', folder=folder)
        Asset.objects.filter(id=older.id).update(
            created_at=timezone.now() - timedelta(days=1),
        )
        zeta = make_folder('zeta', parent=folder)
        alpha = make_folder('alpha', parent=folder)
        make_asset('elsewhere.jpg')

        contents = get_folder_with_contents(folder.id)

        assert contents.folder == folder
        assert contents.assets == [newer, older]
        assert contents.subfolders == [alpha, zeta]

    def test_missing_folder(self, db):
        """Test nonexistent folder fails."""
        with pytest.raises(NotFoundError):
            get_folder_with_contents(99999)


def test_build_folder_tree_skips_orphans():
    """Test folders whose parent is missing are left out of the tree."""
    folders = [
        Folder(id=1, name='root', parent_id=None),
        Folder(id=2, name='child', parent_id=1),
        Folder(id=3, name='orphan', parent_id=99),
    ]

    tree = build_folder_tree(folders)

    assert len(tree) == 1
    assert tree[0].folder.id == 1
    assert [node.folder.id for node in tree[0].children] == [2]
    assert tree[0].children[0].children == []


def test_build_folder_tree_forest_sorted_by_name():
    """Test multiple roots and siblings come back sorted by name."""
    folders = [
        Folder(id=1, name='b-root', parent_id=None),
        Folder(id=2, name='a-root', parent_id=None),
        Folder(id=3, name='z-child', parent_id=2),
        Folder(id=4, name='m-child', parent_id=2),
        Folder(id=5, name='leaf', parent_id=4),
    ]

    tree = build_folder_tree(folders)

    assert [node.folder.name for node in tree] == ['a-root', 'b-root']
    a_root = tree[0]
    assert [node.folder.name for node in a_root.children] == [
        'm-child',
        'z-child',
    ]
    assert a_root.children[0].children[0].folder.id == 5


def test_build_folder_tree_terminates_on_cycle():
    """Test folders caught in a parent cycle are unreachable."""
    folders = [
        Folder(id=1, name='root', parent_id=None),
        Folder(id=2, name='loop-a', parent_id=3),
        Folder(id=3, name='loop-b', parent_id=2),
    ]

    tree = build_folder_tree(folders)

    assert len(tree) == 1
    assert tree[0].children == []


def test_folder_node_to_dict():
    """Test node serialization includes nested children."""
    folders = [
        Folder(id=1, name='root', parent_id=None, color='#111111'),
        Folder(id=2, name='child', parent_id=1, color='#222222'),
    ]

    tree = build_folder_tree(folders)

    assert tree[0].to_dict() == {
        'id': 1,
        'name': 'root',
        'color': '#111111',
        'parent_id': None,
        'children': [{
            'id': 2,
            'name': 'child',
            'color': '#222222',
            'parent_id': 1,
            'children': [],
        }],
    }


@pytest.mark.django_db
def test_get_folder_tree(make_folder):
    """Test tree is built from stored folders."""
    root = make_folder('root')
    child = make_folder('child', parent=root)
    make_folder('grandchild', parent=child)
    other = make_folder('other')

    tree = get_folder_tree()

    assert [node.folder for node in tree] == [other, root]
    assert tree[1].children[0].folder == child
    assert tree[1].children[0].children[0].folder.name == 'grandchild'


@pytest.mark.django_db
class TestGetAncestors:
    """Tests for get_ancestors function."""

    def test_chain_reaches_root(self, make_folder):
        """Test ancestors run from parent to root within N steps."""
        chain = [make_folder('level-0')]
        for level in range(1, 5):
            chain.append(make_folder(f'level-{level}', parent=chain[-1]))

        ancestors = get_ancestors(chain[-1].id)

        assert ancestors == list(reversed(chain[:-1]))
        assert len(ancestors) < Folder.objects.count()
        assert ancestors[-1].parent_id is None

    def test_root_has_no_ancestors(self, make_folder):
        """Test root folder has an empty chain."""
        root = make_folder('root')

        assert get_ancestors(root.id) == []

    def test_stops_on_stored_cycle(self, make_folder):
        """Test corrupt cycle in stored data does not loop forever."""
        first = make_folder('first')
        second = make_folder('second', parent=first)
        Folder.objects.filter(id=first.id).update(parent_id=second.id)

        ancestors = get_ancestors(second.id)

        assert ancestors == [first]

    def test_missing_folder(self, db):
        """Test nonexistent folder fails."""
        with pytest.raises(NotFoundError):
            get_ancestors(99999)


@pytest.mark.django_db
class TestFindCycles:
    """Tests for find_cycles function."""

    def test_no_cycles(self, make_folder):
        """Test consistent tree has no cycles."""
        root = make_folder('root')
        make_folder('child', parent=root)

        assert find_cycles() == []

    def test_reports_each_cycle_once(self, make_folder):
        """Test a two-folder cycle is reported once."""
        first = make_folder('first')
        second = make_folder('second', parent=first)
        make_folder('tail', parent=second)
        Folder.objects.filter(id=first.id).update(parent_id=second.id)

        cycles = find_cycles()

        assert len(cycles) == 1
        assert sorted(cycles[0]) == sorted([first.id, second.id])
