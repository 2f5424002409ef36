from typing import Optional, Sequence, Tuple

from .kdtree import KDTree, NearestSet


class Interpolator:
    """
    Inverse distance weighting (w = 1/d^2) over the k nearest stations.

    Station values are tuples of any fixed length: (dx, dy) wind vectors, or
    1-tuples for scalar readings. One instance is meant to be called once per
    output pixel, so its neighbor set and accumulators are allocated once and
    reused. Not safe to share between concurrent queries; make one
    Interpolator per task instead.
    """

    def __init__(self, tree: KDTree, vectors: Sequence[Sequence[float]], k: int = 5):
        if len(vectors) != len(tree):
            raise ValueError(f"Got {len(vectors)} vectors for {len(tree)} stations")
        self.tree = tree
        self.vectors = [tuple(float(c) for c in v) for v in vectors]
        self.dims = len(self.vectors[0]) if self.vectors else 2
        for v in self.vectors:
            if len(v) != self.dims:
                raise ValueError(f"Mixed value lengths: {len(v)} and {self.dims}")
        self.neighbors = NearestSet(k)
        self._sums = [0.0] * self.dims

    @classmethod
    def from_samples(cls, samples, k: int = 5) -> "Interpolator":
        tree = KDTree([s.location for s in samples])
        return cls(tree, [s.vector for s in samples], k=k)

    def interpolate(self, x: float, y: float) -> Optional[Tuple[float, ...]]:
        """
        Estimated value at (x, y), or None when the tree holds no stations.
        A query exactly on a station returns that station's value unchanged.
        """
        found = self.tree.nearest((x, y), self.neighbors)

        sums = self._sums
        dims = range(self.dims)
        for c in dims:
            sums[c] = 0.0
        sum_w = 0.0
        for i, d2 in found.found():
            v = self.vectors[i]
            if d2 == 0.0:
                return v
            w = 1.0 / d2
            for c in dims:
                sums[c] += w * v[c]
            sum_w += w

        if sum_w == 0.0:
            return None
        return tuple(s / sum_w for s in sums)
