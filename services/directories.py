#!/usr/bin/env python3
"""
ossify/services/directories.py
Directory marker creation (mkdir)
"""

from typing import List

from services.engine import BaseEngine
from services.errors import DirectoryCreationFailed, OperatorError
from services.operator import DELIMITER
from services.paths import ensure_trailing_slash, normalize, to_key


class DirectoryMaker(BaseEngine):

    def mkdir(self, path: str, parents: bool = False) -> List[str]:
        """Create the directory marker for path; returns the markers created"""
        key = normalize(to_key(path))
        if not key:
            self.out("Note: Root directory '/' already exists (bucket root)")
            return []

        target = ensure_trailing_slash(key)
        created: List[str] = []
        try:
            if self.resolver.is_directory(target):
                self.out(f"Directory already exists: {target}")
                return []

            if parents:
                segments = key.split(DELIMITER)
                for i in range(1, len(segments)):
                    ancestor = ensure_trailing_slash(DELIMITER.join(segments[:i]))
                    if not self.resolver.is_directory(ancestor):
                        self._log(f"Creating parent '{ancestor}'")
                        self.operator.create_dir(ancestor)
                        created.append(ancestor)

            self.operator.create_dir(target)
            created.append(target)
        except OperatorError as e:
            raise DirectoryCreationFailed(path, e) from e

        self.out(f"📁 Created directory: {target}")
        return created
