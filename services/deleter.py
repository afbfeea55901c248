#!/usr/bin/env python3
"""
ossify/services/deleter.py
Multi-path delete with per-path outcome tracking
"""

from typing import Dict, List, Optional

from services.engine import BaseEngine
from services.errors import DeleteFailed, DirectoryDeletionNotRecursive, OperatorError, PartialDeletion
from services.operator import EntryMode
from services.paths import to_key


class Deleter(BaseEngine):
    """
    Deletes each requested path in order.

    Directories need recursive=True; that is checked for every path before
    anything is removed. A missing path or a failed removal does not stop
    the remaining paths; all failures are reported together at the end as
    one PartialDeletion.
    """

    def delete(self, paths: List[str], recursive: bool = False) -> Dict[str, bool]:
        kinds: Dict[str, Optional[EntryMode]] = {}
        for path in paths:
            try:
                kind = self.resolver.kind(path)
            except OperatorError as e:
                raise DeleteFailed(path, e) from e
            if kind is EntryMode.DIR and not recursive:
                raise DirectoryDeletionNotRecursive(path)
            kinds[path] = kind

        outcome: Dict[str, bool] = {}
        failed: List[str] = []

        for path in paths:
            if kinds[path] is None:
                self.out(f"❌ Path not found: {path}")
                outcome[path] = False
                failed.append(path)
                continue

            try:
                self._log(f"Removing '{path}' ({kinds[path].value})")
                if kinds[path] is EntryMode.FILE:
                    self.operator.delete(to_key(path))
                else:
                    self.operator.remove_all(to_key(path))
            except OperatorError as e:
                self.out(f"❌ Failed to delete {path}: {e}")
                outcome[path] = False
                failed.append(path)
                continue

            self.out(f"🗑️  Deleted: {path}")
            outcome[path] = True

        if failed:
            raise PartialDeletion(failed, outcome)
        return outcome
