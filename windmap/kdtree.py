import math
from typing import Dict, Iterator, List, Sequence, Tuple, Union

import numpy as np

NONE = -1  # "no child" / "empty slot"


# ---------------------------
# Bounded max-heap of candidates
# ---------------------------

class NearestSet:
    """
    The k closest candidates found by a query, kept as a max-heap on squared
    distance so slot 0 always holds the worst of the set.

    Owned by the caller and reused across queries. Empty slots carry
    index NONE and d2 = +inf.
    """

    def __init__(self, k: int):
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        self.k = k
        self.index: List[int] = [NONE] * k
        self.d2: List[float] = [math.inf] * k

    def clear(self):
        for i in range(self.k):
            self.index[i] = NONE
            self.d2[i] = math.inf

    @property
    def worst(self) -> float:
        return self.d2[0]

    def offer(self, index: int, d2: float) -> bool:
        """Insert the candidate if it beats the current worst."""
        if d2 >= self.d2[0]:
            return False

        # replace the root and sift down
        k = self.k
        dist = self.d2
        idx = self.index
        i = 0
        while True:
            c = 2 * i + 1
            if c >= k:
                break
            r = c + 1
            if r < k and dist[r] > dist[c]:
                c = r
            if dist[c] <= d2:
                break
            dist[i] = dist[c]
            idx[i] = idx[c]
            i = c
        dist[i] = d2
        idx[i] = index
        return True

    def found(self) -> Iterator[Tuple[int, float]]:
        """(index, d2) of every filled slot, in heap order."""
        for i in range(self.k):
            if self.index[i] != NONE:
                yield self.index[i], self.d2[i]

    def __len__(self):
        return sum(1 for i in self.index if i != NONE)


# ---------------------------
# k-d tree (arena of nodes)
# ---------------------------

class KDTree:
    """
    Immutable k-d tree over a fixed point set.

    Nodes live in parallel lists addressed by node id: the point they hold,
    their splitting axis and their left/right child ids (NONE when absent).
    Points strictly less than a node on its axis go left; points tied with the
    node on its axis are always on the node's right, never split.
    """

    def __init__(self, points: Sequence[Sequence[float]], axis_count: int = 2):
        if axis_count < 1:
            raise ValueError(f"axis_count must be >= 1, got {axis_count}")
        self.axis_count = axis_count
        self.points: List[Tuple[float, ...]] = [tuple(float(c) for c in p) for p in points]
        for p in self.points:
            if len(p) != axis_count:
                raise ValueError(f"Point {p} does not have {axis_count} coordinates")

        self.node_point: List[int] = []
        self.node_axis: List[int] = []
        self.left: List[int] = []
        self.right: List[int] = []
        self.root = self._build()

    def __len__(self):
        return len(self.points)

    def _build(self) -> int:
        if not self.points:
            return NONE

        pts = self.points
        root = NONE
        # (indices, depth, parent node, is_left)
        stack = [(list(range(len(pts))), 0, NONE, False)]
        while stack:
            indices, depth, parent, is_left = stack.pop()
            axis = depth % self.axis_count
            indices.sort(key=lambda i: pts[i][axis])

            m = len(indices) // 2
            while m > 0 and pts[indices[m - 1]][axis] == pts[indices[m]][axis]:
                m -= 1

            node = len(self.node_point)
            self.node_point.append(indices[m])
            self.node_axis.append(axis)
            self.left.append(NONE)
            self.right.append(NONE)

            if parent == NONE:
                root = node
            elif is_left:
                self.left[parent] = node
            else:
                self.right[parent] = node

            if m + 1 < len(indices):
                stack.append((indices[m + 1:], depth + 1, node, False))
            if m > 0:
                stack.append((indices[:m], depth + 1, node, True))
        return root

    def nearest(self, point: Sequence[float], k: Union[int, NearestSet]) -> NearestSet:
        """
        Find the k points closest to 'point'.

        k may be a NearestSet to reuse; it is cleared and refilled. Exactly
        min(k, len(tree)) slots are filled on return.
        """
        result = k if isinstance(k, NearestSet) else NearestSet(k)
        result.clear()
        if self.root == NONE:
            return result

        pts = self.points
        node_point, node_axis = self.node_point, self.node_axis
        left, right = self.left, self.right

        # (subtree root, squared distance from query to the subtree's splitting plane)
        stack = [(self.root, 0.0)]
        while stack:
            node, plane_d2 = stack.pop()
            if plane_d2 >= result.worst:
                continue
            while node != NONE:
                i = node_point[node]
                p = pts[i]
                d2 = 0.0
                for a in range(len(p)):
                    delta = point[a] - p[a]
                    d2 += delta * delta
                result.offer(i, d2)

                axis = node_axis[node]
                diff = point[axis] - p[axis]
                if diff < 0:
                    near, far = left[node], right[node]
                else:
                    near, far = right[node], left[node]
                if far != NONE:
                    stack.append((far, diff * diff))
                node = near
        return result

    def to_arrays(self) -> Dict[str, np.ndarray]:
        """The arena as numpy arrays, for inspection or saving."""
        return {
            "points": np.array(self.points, dtype=float).reshape(len(self.points), self.axis_count),
            "node_point": np.array(self.node_point, dtype=np.int64),
            "node_axis": np.array(self.node_axis, dtype=np.int64),
            "left": np.array(self.left, dtype=np.int64),
            "right": np.array(self.right, dtype=np.int64),
            "root": np.array(self.root, dtype=np.int64),
        }
