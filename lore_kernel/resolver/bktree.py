"""BK-tree over index keys for bounded edit-distance search."""

from typing import Callable, Dict, Iterable, List, Optional, Tuple


class _Node:
    __slots__ = ("word", "children")

    def __init__(self, word: str):
        self.word = word
        self.children: Dict[int, "_Node"] = {}


class BKTree:
    """
    Burkhard-Keller tree. ``distance`` must be a metric; every node's
    children are keyed by their distance to the node.
    """

    def __init__(self, distance: Callable[[str, str], int], words: Iterable[str] = ()):
        self.distance = distance
        self._root: Optional[_Node] = None
        self._size = 0
        for word in words:
            self.add(word)

    def __len__(self) -> int:
        return self._size

    def add(self, word: str) -> None:
        if self._root is None:
            self._root = _Node(word)
            self._size = 1
            return

        node = self._root
        while True:
            d = self.distance(word, node.word)
            if d == 0:
                return  # already present
            child = node.children.get(d)
            if child is None:
                node.children[d] = _Node(word)
                self._size += 1
                return
            node = child

    def search(self, word: str, radius: int) -> List[Tuple[int, str]]:
        """All (distance, word) pairs within ``radius`` of ``word``."""
        if self._root is None:
            return []

        results = []
        stack = [self._root]
        while stack:
            node = stack.pop()
            d = self.distance(word, node.word)
            if d <= radius:
                results.append((d, node.word))
            for child_distance, child in node.children.items():
                if d - radius <= child_distance <= d + radius:
                    stack.append(child)
        return sorted(results)
