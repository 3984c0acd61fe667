"""
K-means clustering implementation for exprmath.

This module provides Lloyd's k-means with seedable k-means++ or Forgy
initialization, several independent restarts (optionally run on a thread
pool) and a deterministic recovery for clusters that become empty.
"""

import logging
import numpy as np
from concurrent.futures import ThreadPoolExecutor
from copy import deepcopy
from typing import Any, Dict, List, Optional, Sequence, Tuple

from exprmath.math.distance import distance_matrix
from exprmath.math.exceptions import InvalidInputError
from exprmath.math.sample_matrix import ArrayLike, as_matrix

logger = logging.getLogger(__name__)


INIT_METHODS = ('k-means++', 'forgy')


class Cluster:
    """
    Represents a cluster in K-means clustering.
    """

    def __init__(self,
                 center: np.ndarray,
                 members: Optional[List[int]] = None,
                 id: Optional[int] = None):
        """
        Initialize a cluster with a center and optional members.

        Args:
            center: The center of the cluster
            members: Indices of members belonging to the cluster
            id: Identifier of the cluster (its position in the centroid set)
        """
        self.center = np.array(center, dtype=np.float64)
        self.members = [] if members is None else list(members)
        self.id = id

    def add_member(self, idx: int) -> None:
        """
        Add a member to the cluster.

        Args:
            idx: Index of the member to add
        """
        self.members.append(idx)

    def clear_members(self) -> None:
        """Clear all members from the cluster."""
        self.members = []

    def update_center(self, data: np.ndarray) -> None:
        """
        Update the cluster center to the mean of its members.

        Args:
            data: Data matrix containing all points
        """
        if not self.members:
            # If no members, keep the current center
            return

        self.center = np.mean(data[self.members], axis=0)

    def __repr__(self) -> str:
        """String representation of the cluster."""
        return f"Cluster(id={self.id}, members={len(self.members)})"


class KMeansRun:
    """Outcome of a single k-means restart."""

    def __init__(self, clusters: List[Cluster], labels: np.ndarray,
                 inertia: float, n_iter: int, converged: bool):
        self.clusters = clusters
        self.labels = labels
        self.inertia = inertia
        self.n_iter = n_iter
        self.converged = converged

    def __repr__(self) -> str:
        return f"KMeansRun(inertia={self.inertia:.4f}, n_iter={self.n_iter})"


class KMeansResult:
    """
    Best of several k-means restarts.

    Attributes:
        labels: Cluster id per sample, in [1, k]
        centroids: k x features matrix, row i is the center of cluster i + 1
        inertia: Sum of squared distances from samples to their centroid
        withinss: Per-cluster sum of squared distances
        sizes: Number of samples per cluster
        n_iter: Iterations used by the best restart
        converged: Whether the best restart stopped before max_iters
        restart_inertias: Final inertia of every restart, in restart order
        best_restart: Index of the restart that was kept
        totss: Total sum of squares about the grand mean
    """

    def __init__(self, labels: np.ndarray, centroids: np.ndarray, inertia: float,
                 withinss: np.ndarray, sizes: np.ndarray, n_iter: int, converged: bool,
                 restart_inertias: np.ndarray, best_restart: int, totss: float):
        self.labels = labels
        self.centroids = centroids
        self.inertia = inertia
        self.withinss = withinss
        self.sizes = sizes
        self.n_iter = n_iter
        self.converged = converged
        self.restart_inertias = restart_inertias
        self.best_restart = best_restart
        self.totss = totss

    @property
    def k(self) -> int:
        return self.centroids.shape[0]

    @property
    def tot_withinss(self) -> float:
        return self.inertia

    @property
    def betweenss(self) -> float:
        return self.totss - self.inertia

    def best_so_far(self) -> np.ndarray:
        """Running minimum of the restart inertias (non-increasing)."""
        return np.minimum.accumulate(self.restart_inertias)

    def to_dict(self, sample_ids: Optional[Sequence[Any]] = None) -> List[Dict]:
        """
        Convert clusters to a dictionary format for serialization.

        Args:
            sample_ids: Optional mapping from row index to sample id

        Returns:
            List of cluster dictionaries
        """
        result = []
        for i in range(self.k):
            members = np.flatnonzero(self.labels == i + 1).tolist()
            if sample_ids is not None:
                members = [sample_ids[idx] for idx in members]
            result.append({
                'id': i + 1,
                'center': self.centroids[i].tolist(),
                'members': members,
                'withinss': float(self.withinss[i])
            })
        return result

    def __repr__(self) -> str:
        return f"KMeansResult(k={self.k}, inertia={self.inertia:.4f}, sizes={self.sizes.tolist()})"


def init_clusters(data: np.ndarray,
                  k: int,
                  rng: np.random.Generator,
                  method: str = 'k-means++') -> List[Cluster]:
    """
    Initialize k clusters with centers drawn from the data.

    'forgy' picks k distinct samples uniformly. 'k-means++' picks the first
    center uniformly and each further one with probability proportional to
    its squared distance from the nearest center chosen so far.

    Args:
        data: Data matrix
        k: Number of clusters
        rng: Random generator driving the choice
        method: 'k-means++' or 'forgy'

    Returns:
        List of initialized clusters
    """
    n_points = data.shape[0]

    if method == 'forgy':
        indices = rng.choice(n_points, size=k, replace=False)
        return [Cluster(data[idx], [], i) for i, idx in enumerate(indices)]

    chosen = [int(rng.integers(n_points))]
    min_sq_dists = np.sum((data - data[chosen[0]]) ** 2, axis=1)

    for _ in range(1, k):
        total = np.sum(min_sq_dists)
        if total > 0:
            probs = min_sq_dists / total
        else:
            # Every remaining point coincides with a center
            probs = np.ones(n_points)
            probs[chosen] = 0.0
            probs = probs / np.sum(probs)

        next_idx = int(rng.choice(n_points, p=probs))
        chosen.append(next_idx)
        min_sq_dists = np.minimum(min_sq_dists, np.sum((data - data[next_idx]) ** 2, axis=1))

    return [Cluster(data[idx], [], i) for i, idx in enumerate(chosen)]


def squared_distances_to_centers(data: np.ndarray, clusters: List[Cluster]) -> np.ndarray:
    """
    Squared Euclidean distance from every point to every cluster center.

    Args:
        data: Data matrix
        clusters: List of clusters

    Returns:
        Points x clusters matrix
    """
    dists = np.empty((data.shape[0], len(clusters)))
    for j, cluster in enumerate(clusters):
        dists[:, j] = np.sum((data - cluster.center) ** 2, axis=1)
    return dists


def assign_points_to_clusters(data: np.ndarray, clusters: List[Cluster]) -> np.ndarray:
    """
    Assign each data point to the nearest cluster.

    Equidistant points go to the cluster that comes first in the list.

    Args:
        data: Data matrix
        clusters: List of clusters (members are replaced)

    Returns:
        Position of the assigned cluster for each point
    """
    labels = np.argmin(squared_distances_to_centers(data, clusters), axis=1)

    for j, cluster in enumerate(clusters):
        cluster.members = np.flatnonzero(labels == j).tolist()

    return labels


def reseed_empty_clusters(data: np.ndarray,
                          clusters: List[Cluster],
                          labels: np.ndarray) -> np.ndarray:
    """
    Give every empty cluster a new center and at least one member.

    Empty clusters are handled in list order. Each is re-seeded at the point
    farthest from its own center among points whose cluster has more than
    one member (lowest index on ties). Exact duplicates of that point in the
    same donor cluster move along with it, unless that would empty the donor.

    Args:
        data: Data matrix
        clusters: List of clusters (modified in place)
        labels: Current assignment as positions in the cluster list

    Returns:
        Updated assignment
    """
    labels = labels.copy()

    for j, cluster in enumerate(clusters):
        if cluster.members:
            continue

        sizes = np.bincount(labels, minlength=len(clusters))
        centers = np.vstack([c.center for c in clusters])
        dists = np.sum((data - centers[labels]) ** 2, axis=1)
        dists[sizes[labels] < 2] = -1.0

        idx = int(np.argmax(dists))
        donor = int(labels[idx])
        donor_members = np.flatnonzero(labels == donor)
        moving = donor_members[np.all(data[donor_members] == data[idx], axis=1)]
        if len(moving) == len(donor_members):
            moving = np.array([idx])

        logger.debug(f"Re-seeding empty cluster {j} at point {idx} "
                     f"(moving {len(moving)} point(s) from cluster {donor})")

        labels[moving] = j
        cluster.center = data[idx].copy()
        cluster.members = moving.tolist()
        clusters[donor].members = np.flatnonzero(labels == donor).tolist()

    return labels


def update_cluster_centers(data: np.ndarray, clusters: List[Cluster]) -> None:
    """
    Update the centers of all clusters.

    Args:
        data: Data matrix
        clusters: List of clusters
    """
    for cluster in clusters:
        cluster.update_center(data)


def cluster_step(data: np.ndarray, clusters: List[Cluster]) -> Tuple[List[Cluster], np.ndarray]:
    """
    Perform one step of K-means clustering.

    Args:
        data: Data matrix
        clusters: Current clusters

    Returns:
        Tuple of (updated clusters, assignment)
    """
    # Make a deep copy to avoid modifying the input
    clusters = deepcopy(clusters)

    labels = assign_points_to_clusters(data, clusters)
    labels = reseed_empty_clusters(data, clusters, labels)
    update_cluster_centers(data, clusters)

    return clusters, labels


def inertia(data: np.ndarray, clusters: List[Cluster], labels: np.ndarray) -> float:
    """Sum of squared distances from each point to its cluster center."""
    centers = np.vstack([c.center for c in clusters])
    return float(np.sum((data - centers[labels]) ** 2))


def run_kmeans(data: np.ndarray,
               k: int,
               rng: np.random.Generator,
               max_iters: int = 100,
               init: str = 'k-means++') -> KMeansRun:
    """
    Run one k-means restart until the assignment stops changing.

    Args:
        data: Data matrix
        k: Number of clusters
        rng: Random generator for the initialization
        max_iters: Maximum number of iterations
        init: Initialization method

    Returns:
        KMeansRun with the final clusters and assignment
    """
    clusters = init_clusters(data, k, rng, init)
    labels = None
    converged = False
    n_iter = 0

    for n_iter in range(1, max_iters + 1):
        clusters, new_labels = cluster_step(data, clusters)

        if labels is not None and np.array_equal(labels, new_labels):
            converged = True
            break

        labels = new_labels

    labels = new_labels
    return KMeansRun(clusters, labels, inertia(data, clusters, labels), n_iter, converged)


def kmeans(data: ArrayLike,
           k: int,
           nstart: int = 1,
           max_iters: int = 100,
           seed: Optional[int] = None,
           init: str = 'k-means++',
           n_jobs: int = 1) -> KMeansResult:
    """
    Perform K-means clustering with several random restarts.

    Each restart gets its own generator spawned from the seed, so the result
    is the same whether restarts run serially or on a thread pool. The
    restart with the lowest inertia is kept; ties go to the earlier restart.

    Args:
        data: Samples-by-features matrix
        k: Number of clusters, 1 <= k <= n
        nstart: Number of restarts
        max_iters: Maximum iterations per restart
        seed: Seed for reproducible initialization
        init: 'k-means++' or 'forgy'
        n_jobs: Number of worker threads for the restarts

    Returns:
        KMeansResult of the best restart

    Raises:
        InvalidInputError: For malformed data or out-of-range parameters
    """
    values = as_matrix(data)
    n_points = values.shape[0]

    if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1 or k > n_points:
        raise InvalidInputError(f"Number of clusters must be in [1, {n_points}], got {k}")
    if nstart < 1:
        raise InvalidInputError(f"nstart must be at least 1, got {nstart}")
    if max_iters < 1:
        raise InvalidInputError(f"max_iters must be at least 1, got {max_iters}")
    if init not in INIT_METHODS:
        raise InvalidInputError(f"Unknown init method {init!r}, expected one of {INIT_METHODS}")
    if n_jobs < 1:
        raise InvalidInputError(f"n_jobs must be at least 1, got {n_jobs}")

    children = np.random.SeedSequence(seed).spawn(nstart)

    def restart(child: np.random.SeedSequence) -> KMeansRun:
        return run_kmeans(values, k, np.random.default_rng(child), max_iters, init)

    if n_jobs > 1 and nstart > 1:
        with ThreadPoolExecutor(max_workers=min(n_jobs, nstart)) as executor:
            runs = list(executor.map(restart, children))
    else:
        runs = [restart(child) for child in children]

    restart_inertias = np.array([run.inertia for run in runs])
    best_idx = int(np.argmin(restart_inertias))
    best = runs[best_idx]

    if not best.converged:
        logger.warning(f"k-means did not converge in {max_iters} iterations")

    logger.debug(f"k-means k={k}: best of {nstart} restart(s) is #{best_idx} "
                 f"with inertia {best.inertia:.4f}")

    centroids = np.vstack([c.center for c in best.clusters])
    sq = np.sum((values - centroids[best.labels]) ** 2, axis=1)
    withinss = np.bincount(best.labels, weights=sq, minlength=k)
    sizes = np.bincount(best.labels, minlength=k)
    totss = float(np.sum((values - values.mean(axis=0)) ** 2))

    return KMeansResult(
        labels=best.labels + 1,
        centroids=centroids,
        inertia=best.inertia,
        withinss=withinss,
        sizes=sizes,
        n_iter=best.n_iter,
        converged=best.converged,
        restart_inertias=restart_inertias,
        best_restart=best_idx,
        totss=totss
    )


def silhouette(data: ArrayLike, labels: Sequence[int]) -> float:
    """
    Calculate the mean silhouette coefficient of a clustering.

    Samples alone in their cluster score 0.

    Args:
        data: Data matrix
        labels: Cluster id per sample

    Returns:
        Silhouette coefficient (between -1 and 1)
    """
    values = as_matrix(data)
    labels = np.asarray(labels)
    if labels.shape[0] != values.shape[0]:
        raise InvalidInputError(f"Got {labels.shape[0]} labels for {values.shape[0]} samples")

    cluster_ids = np.unique(labels)
    if len(cluster_ids) <= 1 or len(cluster_ids) == values.shape[0]:
        return 0.0

    dist_matrix = distance_matrix(values)

    # Mean distance from every point to every cluster
    masks = [labels == c for c in cluster_ids]
    sums = np.column_stack([dist_matrix[:, mask].sum(axis=1) for mask in masks])
    counts = np.array([mask.sum() for mask in masks])

    silhouette_values = np.zeros(values.shape[0])
    for i in range(values.shape[0]):
        own = int(np.searchsorted(cluster_ids, labels[i]))
        if counts[own] == 1:
            continue
        a = sums[i, own] / (counts[own] - 1)
        others = [sums[i, c] / counts[c] for c in range(len(cluster_ids)) if c != own]
        b = min(others)
        if max(a, b) > 0:
            silhouette_values[i] = (b - a) / max(a, b)

    return float(np.mean(silhouette_values))
