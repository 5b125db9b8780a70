"""Semantic clustering of graph nodes by label vocabulary."""

from __future__ import annotations

import logging
import math
from collections import Counter

import numpy as np

from textdigest.facts import STOPWORDS
from textdigest.models import EntityCluster, GraphNode

log = logging.getLogger(__name__)

MIN_NODES_FOR_CLUSTERING = 3
MAX_CLUSTERS = 10
MAX_ITERATIONS = 100
DEFAULT_SEED = 42


def trivial_cluster(nodes: list[GraphNode]) -> list[EntityCluster]:
    return [EntityCluster(id="cluster_0", label="All Entities", entities=list(nodes), centroid=[], coherence=1.0)]


def _label_tokens(label: str) -> list[str]:
    return [word for word in label.lower().split() if word not in STOPWORDS]


def vectorize_labels(labels: list[str]) -> np.ndarray:
    """Binary bag-of-words vectors over the shared label vocabulary."""
    tokenized = [_label_tokens(label) for label in labels]
    vocabulary: dict[str, int] = {}
    for tokens in tokenized:
        for token in tokens:
            vocabulary.setdefault(token, len(vocabulary))
    if not vocabulary:
        raise ValueError("No label features to cluster on.")

    vectors = np.zeros((len(labels), len(vocabulary)))
    for row, tokens in enumerate(tokenized):
        for token in tokens:
            vectors[row, vocabulary[token]] = 1.0
    return vectors


def choose_cluster_count(node_count: int) -> int:
    return max(2, min(math.floor(math.sqrt(node_count / 2)), MAX_CLUSTERS))


def _kmeans_plus_plus(vectors: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    centroids = [vectors[rng.integers(len(vectors))]]
    for _ in range(1, k):
        distances = np.min(
            [np.sum((vectors - centroid) ** 2, axis=1) for centroid in centroids],
            axis=0,
        )
        total = distances.sum()
        if total <= 0:
            index = rng.integers(len(vectors))
        else:
            index = rng.choice(len(vectors), p=distances / total)
        centroids.append(vectors[index])
    return np.array(centroids)


def kmeans(vectors: np.ndarray, k: int, *, seed: int = DEFAULT_SEED) -> tuple[np.ndarray, np.ndarray]:
    """Lloyd's algorithm with k-means++ seeding. Returns (assignments, centroids)."""
    if k <= 0 or len(vectors) < k:
        raise ValueError(f"Cannot form {k} clusters from {len(vectors)} vectors.")

    rng = np.random.default_rng(seed)
    centroids = _kmeans_plus_plus(vectors, k, rng)
    assignments = np.full(len(vectors), -1)
    for _ in range(MAX_ITERATIONS):
        distances = np.linalg.norm(vectors[:, None, :] - centroids[None, :, :], axis=2)
        updated = distances.argmin(axis=1)
        if np.array_equal(updated, assignments):
            break
        assignments = updated
        for cluster in range(k):
            members = vectors[assignments == cluster]
            if len(members):
                centroids[cluster] = members.mean(axis=0)
    return assignments, centroids


def cluster_label(members: list[GraphNode], index: int) -> str:
    counts: Counter[str] = Counter()
    for node in members:
        counts.update(word for word in node.label.lower().split() if len(word) > 3)
    top = [word.capitalize() for word, _ in counts.most_common(2)]
    return " & ".join(top) if top else f"Cluster {index}"


def coherence_score(vectors: np.ndarray, centroid: np.ndarray) -> float:
    if not len(vectors):
        return 0.0
    average = float(np.linalg.norm(vectors - centroid, axis=1).mean())
    return min(1.0, max(0.0, 1.0 - average / 2))


def cluster_entities(nodes: list[GraphNode], *, seed: int = DEFAULT_SEED) -> list[EntityCluster]:
    """Partition ``nodes`` into labelled clusters, or one trivial cluster when that is not possible."""
    if len(nodes) < MIN_NODES_FOR_CLUSTERING:
        return trivial_cluster(nodes)

    try:
        vectors = vectorize_labels([node.label for node in nodes])
        k = choose_cluster_count(len(nodes))
        with np.errstate(all="raise"):
            assignments, centroids = kmeans(vectors, k, seed=seed)
    except (ValueError, FloatingPointError, np.linalg.LinAlgError) as exc:
        log.warning("Clustering failed (%s); using a single cluster.", exc)
        return trivial_cluster(nodes)

    clusters: list[EntityCluster] = []
    for cluster in dict.fromkeys(int(a) for a in assignments):
        mask = assignments == cluster
        members = [node for node, selected in zip(nodes, mask, strict=True) if selected]
        clusters.append(
            EntityCluster(
                id=f"cluster_{len(clusters)}",
                label=cluster_label(members, len(clusters)),
                entities=members,
                centroid=centroids[cluster].tolist(),
                coherence=coherence_score(vectors[mask], centroids[cluster]),
            )
        )

    log.info("Clustered %d nodes into %d clusters (k=%d).", len(nodes), len(clusters), k)
    return clusters


def top_entities_per_cluster(clusters: list[EntityCluster], top_n: int = 5) -> list[tuple[str, list[str]]]:
    """Pair each cluster label with its most widely sourced member labels."""
    ranked: list[tuple[str, list[str]]] = []
    for cluster in clusters:
        members = sorted(cluster.entities, key=lambda node: len(node.sources), reverse=True)
        ranked.append((cluster.label, [node.label for node in members[:top_n]]))
    return ranked
