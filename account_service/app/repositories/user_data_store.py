from __future__ import annotations

import shutil
from pathlib import Path

from .interfaces import UserDataStoreInterface


class UserDataStore(UserDataStoreInterface):
    """<root>/<handle> 디렉토리에 저장된 유저 소유 데이터 트리 접근 레이어."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def path_for(self, handle: str) -> Path:
        path = (self._root / handle).resolve()
        # handle 에 ../ 등이 섞여도 root 바깥은 절대 건드리지 않는다.
        if self._root.resolve() not in path.parents:
            raise ValueError(f"invalid handle for user data path: {handle!r}")
        return path

    def delete_tree(self, handle: str) -> bool:
        path = self.path_for(handle)
        if not path.exists():
            return False
        shutil.rmtree(path)
        return True
