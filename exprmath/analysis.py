"""
Analysis driver for exprmath.

This module ties the numerical routines together into the two workflows
the package exists for: unsupervised exploration of a labelled expression
matrix (PCA, hierarchical clustering under several linkages, k-means, and
comparison of the clusters with the known labels) and linear SVM
classification of a train/test split.
"""

import logging
import time
from typing import Any, Dict, Optional

from exprmath.components.config import Config, ConfigManager
from exprmath.math.classify import SVMResult, classify
from exprmath.math.clusters import kmeans, silhouette
from exprmath.math.compare import compare_assignments, crosstab
from exprmath.math.distance import distance_matrix
from exprmath.math.exceptions import InvalidInputError
from exprmath.math.hclust import hclust
from exprmath.math.pca import pca
from exprmath.math.sample_matrix import SampleMatrix
from exprmath.math.standardize import standardize
from exprmath.utils.general import to_builtin

# Set up logging
logger = logging.getLogger(__name__)


class ExplorationReport:
    """
    Everything the exploration computes, kept for inspection or rendering.
    """

    def __init__(self, matrix: SampleMatrix, pca_result, dendrograms: Dict[str, Any],
                 hclust_assignments: Dict[str, Any], method: str, k: int,
                 cut_height: Optional[float], kmeans_result, pc_dendrogram,
                 pc_assignment, n_score_vectors: int, silhouettes: Dict[str, float]):
        self.matrix = matrix
        self.pca = pca_result
        self.dendrograms = dendrograms
        self.hclust_assignments = hclust_assignments
        self.method = method
        self.k = k
        self.cut_height = cut_height
        self.kmeans = kmeans_result
        self.pc_dendrogram = pc_dendrogram
        self.pc_assignment = pc_assignment
        self.n_score_vectors = n_score_vectors
        self.silhouettes = silhouettes

    @property
    def labels(self):
        return self.matrix.labels

    def label_tables(self) -> Dict[str, Any]:
        """Cross-tabulations of every clustering against the labels."""
        if self.labels is None:
            return {}

        tables = {f"hclust-{m}": crosstab(a, self.labels)
                  for m, a in self.hclust_assignments.items()}
        tables['kmeans'] = crosstab(self.kmeans.labels, self.labels)
        tables['hclust-pc-scores'] = crosstab(self.pc_assignment, self.labels)
        return tables

    def kmeans_vs_hclust(self):
        """Cross-tabulation of the k-means clusters against the primary hierarchical ones."""
        return crosstab(self.kmeans.labels, self.hclust_assignments[self.method],
                        row_name='kmeans', col_name='hclust')

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the report to plain Python types for JSON/YAML output.

        Returns:
            Report dictionary
        """
        sample_ids = self.matrix.sample_ids()
        primary = self.hclust_assignments[self.method]

        result = {
            'samples': self.matrix.n_samples,
            'features': self.matrix.n_features,
            'pca': {
                'scaled': self.pca.scale is not None,
                'components': self.pca.n_components,
                'summary': self.pca.summary(),
                'pve': self.pca.pve,
                'cumulative-pve': self.pca.cumulative_pve,
            },
            'hclust': {
                'method': self.method,
                'k': self.k,
                'cut-height': self.cut_height,
                'assignments': {m: dict(zip(sample_ids, a)) for m, a in self.hclust_assignments.items()},
                'root-heights': {m: d.heights[-1] for m, d in self.dendrograms.items()},
            },
            'hclust-pc-scores': {
                'score-vectors': self.n_score_vectors,
                'assignment': dict(zip(sample_ids, self.pc_assignment)),
            },
            'kmeans': {
                'k': self.kmeans.k,
                'assignment': dict(zip(sample_ids, self.kmeans.labels)),
                'sizes': self.kmeans.sizes,
                'inertia': self.kmeans.inertia,
                'withinss': self.kmeans.withinss,
                'betweenss': self.kmeans.betweenss,
                'totss': self.kmeans.totss,
                'iterations': self.kmeans.n_iter,
                'best-restart': self.kmeans.best_restart,
                'restart-inertias': self.kmeans.restart_inertias,
            },
            'silhouette': self.silhouettes,
            'kmeans-vs-hclust': {
                'table': self.kmeans_vs_hclust(),
                'scores': compare_assignments(self.kmeans.labels, primary),
            },
        }

        if self.labels is not None:
            result['label-counts'] = self.matrix.label_counts()
            result['label-tables'] = self.label_tables()
            result['label-scores'] = {
                **{f"hclust-{m}": compare_assignments(a, self.labels)
                   for m, a in self.hclust_assignments.items()},
                'kmeans': compare_assignments(self.kmeans.labels, self.labels),
                'hclust-pc-scores': compare_assignments(self.pc_assignment, self.labels),
            }

        return to_builtin(result)


def run_exploration(matrix: SampleMatrix, config: Optional[Config] = None) -> ExplorationReport:
    """
    Run PCA, hierarchical clustering and k-means on a sample matrix.

    Args:
        matrix: Samples-by-features matrix, optionally labelled
        config: Configuration (defaults to the shared one)

    Returns:
        ExplorationReport
    """
    config = config or ConfigManager.get_config()
    start_time = time.time()

    logger.info(f"Exploring {matrix.n_samples}x{matrix.n_features} matrix")

    pca_result = pca(matrix, scale=config.get('pca.scale'))
    logger.info(f"[{time.time() - start_time:.2f}s] PCA: {pca_result.n_components} components, "
                f"first 5 explain {pca_result.cumulative_pve[min(4, pca_result.n_components - 1)]:.3f}")

    standardized = standardize(matrix, scale=config.get('standardize.scale'))
    dists = distance_matrix(standardized.values)

    method = config.get('hclust.method')
    k = config.get('hclust.k')
    dendrograms = {m: hclust(dists, m) for m in config.get('hclust.methods')}
    assignments = {m: d.cut(k) for m, d in dendrograms.items()}
    logger.info(f"[{time.time() - start_time:.2f}s] Hierarchical clustering with "
                f"{', '.join(dendrograms)} linkage cut at k={k}")

    try:
        cut_height = dendrograms[method].height_for(k)
    except InvalidInputError as e:
        logger.warning(f"No cut height for k={k}: {e}")
        cut_height = None

    kmeans_result = kmeans(
        standardized.values,
        k=config.get('kmeans.k'),
        nstart=config.get('kmeans.nstart'),
        max_iters=config.get('kmeans.max-iters'),
        seed=config.get('kmeans.seed'),
        init=config.get('kmeans.init'),
        n_jobs=config.get('kmeans.n-jobs')
    )
    logger.info(f"[{time.time() - start_time:.2f}s] k-means: sizes {kmeans_result.sizes.tolist()}, "
                f"inertia {kmeans_result.inertia:.2f}")

    # Mean silhouette of each partition in the standardized space
    silhouettes = {f"hclust-{m}": silhouette(standardized.values, a) for m, a in assignments.items()}
    silhouettes['kmeans'] = silhouette(standardized.values, kmeans_result.labels)

    n_score_vectors = min(config.get('pca.n-score-vectors'), pca_result.n_components)
    pc_dendrogram = hclust(distance_matrix(pca_result.top_scores(n_score_vectors)), method)
    pc_assignment = pc_dendrogram.cut(k)

    logger.info(f"[{time.time() - start_time:.2f}s] Exploration complete")

    return ExplorationReport(
        matrix=matrix,
        pca_result=pca_result,
        dendrograms=dendrograms,
        hclust_assignments=assignments,
        method=method,
        k=k,
        cut_height=cut_height,
        kmeans_result=kmeans_result,
        pc_dendrogram=pc_dendrogram,
        pc_assignment=pc_assignment,
        n_score_vectors=n_score_vectors,
        silhouettes=silhouettes
    )


def run_classification(train: SampleMatrix,
                       test: Optional[SampleMatrix] = None,
                       config: Optional[Config] = None) -> SVMResult:
    """
    Fit a linear SVM on labelled training data and evaluate it.

    Args:
        train: Labelled training matrix
        test: Optional labelled test matrix
        config: Configuration (defaults to the shared one)

    Returns:
        SVMResult
    """
    config = config or ConfigManager.get_config()
    return classify(train, test, cost=config.get('svm.cost'), scale=config.get('svm.scale'))


def classification_to_dict(result: SVMResult) -> Dict[str, Any]:
    """
    Convert a classification result to plain Python types.

    Args:
        result: Result of run_classification

    Returns:
        Report dictionary
    """
    report = {
        'classes': result.classes,
        'support-vectors': result.n_support,
        'training': {
            'accuracy': result.training.accuracy,
            'class-counts': result.training.class_counts(),
            'confusion': result.training.confusion,
        },
    }
    if result.test is not None:
        report['test'] = {
            'accuracy': result.test.accuracy,
            'class-counts': result.test.class_counts(),
            'confusion': result.test.confusion,
        }
    return to_builtin(report)
