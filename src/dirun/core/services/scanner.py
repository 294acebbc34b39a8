from __future__ import annotations

"""
Parallel Directory Traversal Service.

Walks a directory tree with one thread-pool fan-out per visited directory,
building a DirectoryNode per directory. Every matched file is handed to an
optional dispatcher as soon as its directory is listed; the scan never
waits for the dispatched work. Recursive file counts are merged into each
parent as its subtree scans return.
"""

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional

from dirun.domain.errors import AccessDeniedError, ConfigError
from dirun.domain.tree_models import DirectoryNode, FileTask, TraversalContext
from dirun.infra.fs import compile_pattern, list_directories, list_files

logger = logging.getLogger(__name__)

FileDispatcher = Callable[[FileTask], None]


class DirectoryScanner:
    """
    Recursive parallel scanner.

    Args:
        dispatch: Called once per matched file, from the scanning thread.
                  Must not block on the work it starts.
    """

    def __init__(self, dispatch: Optional[FileDispatcher] = None):
        self._dispatch = dispatch

    # ==========================================================================
    # PUBLIC API
    # ==========================================================================

    def scan(self, ctx: TraversalContext, root: Optional[DirectoryNode] = None) -> DirectoryNode:
        """
        Traverse the tree described by 'ctx'.

        Args:
            ctx: Root path, filter, recurse flag and cancellation event.
            root: Node to fill in (a fresh one when omitted).

        Returns:
            DirectoryNode: The root node, named with the absolute root path.
                           Its num_files is final.

        Raises:
            ConfigError: The root is not a directory or the filter is invalid.
        """
        root_path = os.path.abspath(ctx.root_path)
        if not os.path.isdir(root_path):
            raise ConfigError(f"invalid DIR argument: {ctx.root_path}")

        # Fail before anything is dispatched
        compile_pattern(ctx.file_pattern)

        node = root if root is not None else DirectoryNode()
        logger.debug(
            f"DIRSCAN: start root={root_path} files={ctx.file_pattern} recurse={ctx.recurse}"
        )
        self._visit(root_path, root_path, ctx, node)
        node.name = root_path
        logger.debug(f"DIRSCAN: finished root={root_path} num_files={node.num_files}")
        return node

    # ==========================================================================
    # PRIVATE HELPERS
    # ==========================================================================

    def _visit(self, dir_path: str, root_path: str, ctx: TraversalContext, node: DirectoryNode) -> None:
        if ctx.cancelled:
            return

        file_paths = self._list_or_empty(list_files, dir_path, ctx.file_pattern)
        node.files = [
            FileTask(
                path=p,
                path_rel=os.path.relpath(p, root_path),
                name=os.path.basename(p),
            )
            for p in file_paths
        ]
        node.add_files(len(node.files))

        if self._dispatch is not None:
            for task in node.files:
                self._dispatch(task)

        if ctx.recurse:
            subdir_paths = self._list_or_empty(list_directories, dir_path)
            node.dirs = [DirectoryNode(name=os.path.basename(p)) for p in subdir_paths]
            if subdir_paths:
                self._visit_subdirs(subdir_paths, root_path, ctx, node)

        logger.debug(
            f"DIRSCAN: {dir_path} subdirs={len(node.dirs)} files={len(node.files)}"
        )

    def _visit_subdirs(
            self,
            subdir_paths: List[str],
            root_path: str,
            ctx: TraversalContext,
            node: DirectoryNode
    ) -> None:
        """Scan sibling subdirectories concurrently and merge their counts."""
        with ThreadPoolExecutor(thread_name_prefix="DirScan") as executor:
            futures: Dict[Future, DirectoryNode] = {
                executor.submit(self._visit, path, root_path, ctx, child): child
                for path, child in zip(subdir_paths, node.dirs)
            }
            try:
                for future in as_completed(futures):
                    future.result()
                    node.add_files(futures[future].num_files)
            except KeyboardInterrupt:
                # Leaving the block joins the pool; queued visits must return at once
                ctx.cancel()
                logger.debug(f"DIRSCAN: interrupted below {os.path.dirname(subdir_paths[0])}")
                raise

    @staticmethod
    def _list_or_empty(lister: Callable[..., List[str]], *args: str) -> List[str]:
        try:
            return lister(*args)
        except AccessDeniedError as e:
            logger.warning(f"warning: {e}")
            return []
