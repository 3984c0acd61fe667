"""
Agglomerative hierarchical clustering for exprmath.

Clusters are merged greedily from singletons to a single root under
complete, average or single linkage, using Lance-Williams updates of a
working distance matrix. The merge history is kept as a Dendrogram in the
same layout as SciPy's linkage matrix, so it can be handed directly to
``scipy.cluster.hierarchy.dendrogram`` for rendering.

Ties between equally close cluster pairs are broken deterministically:
each live cluster occupies the slot of its smallest member sample index,
and the pair of slots (i, j), i < j, that comes first in row-major order
is merged. In other words the tie goes to the pair whose smallest member
indices are lexicographically lowest.
"""

import logging
import numpy as np
from typing import List, Union

from scipy.spatial.distance import squareform

from exprmath.math.exceptions import InvalidInputError
from exprmath.utils.general import first_appearance_ids

logger = logging.getLogger(__name__)


LINKAGE_METHODS = ('complete', 'average', 'single')


class Dendrogram:
    """
    Binary merge tree over n leaves.

    Leaves are numbered 0..n-1 by sample index. The cluster created by merge
    step s is numbered n + s. Each row of ``merges`` holds
    (child_a, child_b, height, size) with child_a < child_b.
    """

    def __init__(self, merges: np.ndarray, n_leaves: int, method: str):
        self.merges = merges
        self.n_leaves = n_leaves
        self.method = method

    @property
    def heights(self) -> np.ndarray:
        """Merge heights in merge order."""
        return self.merges[:, 2]

    @property
    def root(self) -> int:
        return 2 * self.n_leaves - 2

    def to_linkage_matrix(self) -> np.ndarray:
        """Get a copy of the merges as a SciPy-compatible linkage matrix."""
        return self.merges.copy()

    def children(self, node: int):
        """
        Get the two children of an internal node.

        Args:
            node: Node id (n_leaves..2n-2)

        Returns:
            Tuple of child node ids
        """
        if node < self.n_leaves or node > self.root:
            raise InvalidInputError(f"Node {node} is not an internal node")
        row = self.merges[node - self.n_leaves]
        return int(row[0]), int(row[1])

    def members(self, node: int) -> List[int]:
        """
        Get the sample indices under a node, in leaf order.

        Args:
            node: Leaf or internal node id

        Returns:
            List of sample indices
        """
        if node < 0 or node > self.root:
            raise InvalidInputError(f"Node {node} out of range")

        result = []
        stack = [node]
        while stack:
            current = stack.pop()
            if current < self.n_leaves:
                result.append(current)
            else:
                left, right = self.children(current)
                stack.append(right)
                stack.append(left)
        return result

    def leaf_order(self) -> List[int]:
        """Left-to-right order of the leaves when the tree is drawn."""
        return self.members(self.root)

    def cut(self, k: int) -> np.ndarray:
        """
        Cut the tree into k clusters by undoing the k - 1 highest merges.

        Cluster ids are 1..k, numbered in order of first appearance when
        scanning the samples by index (so sample 0 is always in cluster 1).

        Args:
            k: Number of clusters, 1 <= k <= n

        Returns:
            Array of cluster ids, one per sample

        Raises:
            InvalidInputError: If k is out of range
        """
        n = self.n_leaves
        if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1 or k > n:
            raise InvalidInputError(f"Number of clusters must be in [1, {n}], got {k}")

        parent = np.arange(2 * n - 1)
        for step in range(n - k):
            a, b = int(self.merges[step, 0]), int(self.merges[step, 1])
            parent[a] = n + step
            parent[b] = n + step

        roots = np.empty(n, dtype=int)
        for leaf in range(n):
            node = leaf
            while parent[node] != node:
                node = parent[node]
            roots[leaf] = node

        return first_appearance_ids(roots)

    def n_clusters_at(self, height: float) -> int:
        """Number of clusters left after applying every merge at or below height."""
        return self.n_leaves - int(np.sum(self.heights <= height))

    def cut_height(self, height: float) -> np.ndarray:
        """
        Cut the tree at a height.

        Every merge at or below the height is kept. Merge heights are
        non-decreasing for the supported linkages, so this is equivalent to
        cut(n_clusters_at(height)).

        Args:
            height: Non-negative cut height

        Returns:
            Array of cluster ids, one per sample
        """
        if not np.isfinite(height) or height < 0:
            raise InvalidInputError(f"Cut height must be a non-negative number, got {height}")
        return self.cut(self.n_clusters_at(height))

    def height_for(self, k: int) -> float:
        """
        Find a cut height that yields exactly k clusters.

        The height is the midpoint of the gap between the merge that leaves
        k clusters and the next one; for k = 1 it is the root height.

        Args:
            k: Number of clusters

        Returns:
            Cut height

        Raises:
            InvalidInputError: If k is out of range, or tied merge heights
                mean no height separates exactly k clusters
        """
        n = self.n_leaves
        if k < 1 or k > n:
            raise InvalidInputError(f"Number of clusters must be in [1, {n}], got {k}")
        if k == 1:
            return float(self.heights[-1])

        upper = self.heights[n - k]
        lower = self.heights[n - k - 1] if k < n else 0.0
        if k == n and upper == 0:
            raise InvalidInputError("Duplicate samples cannot be separated by any cut height")
        if k < n and lower == upper:
            raise InvalidInputError(f"Tied merge heights: no cut height yields exactly {k} clusters")
        return float((lower + upper) / 2)

    def __repr__(self) -> str:
        return f"Dendrogram(leaves={self.n_leaves}, method={self.method!r})"


def validate_distances(distances: Union[np.ndarray, list]) -> np.ndarray:
    """
    Check a distance matrix and return it as a square float array.

    Accepts either a square matrix or a condensed distance vector.

    Args:
        distances: Pairwise distances

    Returns:
        Square distance matrix (a copy)

    Raises:
        InvalidInputError: If the input is not a valid distance matrix
    """
    try:
        dists = np.array(distances, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Distances must be numeric: {e}") from e

    if dists.ndim == 1:
        try:
            dists = squareform(dists, checks=False)
        except ValueError as e:
            raise InvalidInputError(f"Invalid condensed distance vector: {e}") from e

    if dists.ndim != 2 or dists.shape[0] != dists.shape[1]:
        raise InvalidInputError(f"Distance matrix must be square, got shape {dists.shape}")
    if dists.shape[0] < 2:
        raise InvalidInputError("At least 2 samples are required for clustering")
    if not np.all(np.isfinite(dists)):
        raise InvalidInputError("Distance matrix contains non-finite values")
    if np.any(dists < 0):
        raise InvalidInputError("Distance matrix contains negative values")
    if not np.allclose(dists, dists.T):
        raise InvalidInputError("Distance matrix is not symmetric")

    return dists


def hclust(distances: Union[np.ndarray, list], method: str = 'complete') -> Dendrogram:
    """
    Build a dendrogram by agglomerative clustering.

    Args:
        distances: n x n distance matrix (or condensed vector)
        method: Linkage rule: 'complete' (max pairwise distance between
            members), 'average' (mean pairwise distance) or 'single'
            (min pairwise distance)

    Returns:
        Dendrogram with n - 1 merges

    Raises:
        InvalidInputError: For malformed distances or an unknown method
    """
    if method not in LINKAGE_METHODS:
        raise InvalidInputError(
            f"Unknown linkage method {method!r}, expected one of {LINKAGE_METHODS}"
        )

    work = validate_distances(distances)
    n = work.shape[0]
    np.fill_diagonal(work, np.inf)

    node_ids = np.arange(n)
    sizes = np.ones(n)
    merges = np.zeros((n - 1, 4))

    for step in range(n - 1):
        flat = int(np.argmin(work))
        i, j = divmod(flat, n)
        height = work[i, j]

        if method == 'single':
            updated = np.minimum(work[i], work[j])
        elif method == 'complete':
            updated = np.maximum(work[i], work[j])
        else:
            updated = (sizes[i] * work[i] + sizes[j] * work[j]) / (sizes[i] + sizes[j])

        updated[i] = np.inf
        updated[j] = np.inf
        work[i, :] = updated
        work[:, i] = updated
        work[j, :] = np.inf
        work[:, j] = np.inf

        a, b = sorted((int(node_ids[i]), int(node_ids[j])))
        merges[step] = (a, b, height, sizes[i] + sizes[j])

        node_ids[i] = n + step
        sizes[i] += sizes[j]

    logger.debug(f"Built {method} linkage dendrogram over {n} samples, "
                 f"root height {merges[-1, 2]:.4f}")

    return Dendrogram(merges, n, method)


def cut_tree(dendrogram: Dendrogram, k: int) -> np.ndarray:
    """
    Cut a dendrogram into k clusters.

    Args:
        dendrogram: Result of hclust
        k: Number of clusters, 1 <= k <= n

    Returns:
        Array of cluster ids in [1, k], one per sample
    """
    return dendrogram.cut(k)
