"""Management command to verify folder tree integrity."""

import logging
from typing import Any

from django.core.management.base import BaseCommand, CommandError

from server.apps.assets.logic.folder_operations import (
    FolderNode,
    find_cycles,
    get_folder_tree,
)
from server.apps.assets.models import Folder

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Report folder cycles and folders unreachable from any root."""

    help = 'Check that every folder chain ends at a root folder'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--show-tree',
            action='store_true',
            help='Print the folder hierarchy',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the check.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If a folder cycle is found.
        """
        tree = get_folder_tree()
        total = Folder.objects.count()
        reachable = sum(_count_nodes(node) for node in tree)

        if options['show_tree']:
            for root in tree:
                self._write_node(root, depth=0)

        self.stdout.write(
            f'Checked {total} folders: {len(tree)} roots, '
            f'{total - reachable} unreachable',
        )

        cycles = find_cycles()
        if cycles:
            for cycle in cycles:
                self.stderr.write(
                    'Cycle: {0}'.format(' -> '.join(map(str, cycle))),
                )
            logger.error('Folder tree has %d cycles', len(cycles))
            raise CommandError(f'Found {len(cycles)} folder cycles')

        self.stdout.write(self.style.SUCCESS('Folder tree is consistent'))

    def _write_node(self, node: FolderNode, depth: int) -> None:
        self.stdout.write(f'{"  " * depth}{node.folder.name} (ID: {node.folder.id})')
        for child in node.children:
            self._write_node(child, depth + 1)


def _count_nodes(node: FolderNode) -> int:
    return 1 + sum(_count_nodes(child) for child in node.children)
