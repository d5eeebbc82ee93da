"""Domain disambiguation rules for topic mapping.

The mapper knows nothing about geometry or linear algebra; it only applies
the signals, boosts and penalties listed here. Adding a domain pair (say
statistics vs probability) is a data change.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DomainSignal:
    """A named token set that marks query text as belonging to a domain.

    ``topic_markers`` decide whether a catalog topic belongs to the domain:
    its lowercased text must contain a marker and none of ``excluded_markers``.
    """

    name: str
    hints: frozenset[str]
    topic_markers: tuple[str, ...]
    excluded_markers: tuple[str, ...] = ()

    def active(self, tokens: Iterable[str]) -> bool:
        return any(token in self.hints for token in tokens)

    def owns(self, topic_lower: str) -> bool:
        if any(marker in topic_lower for marker in self.excluded_markers):
            return False
        return any(marker in topic_lower for marker in self.topic_markers)


@dataclass(frozen=True)
class TopicBoost:
    """Add ``delta`` once to topics containing any marker while ``signal`` is active."""

    signal: str
    markers: tuple[str, ...]
    delta: int


@dataclass(frozen=True)
class CrossDomainPenalty:
    """Add ``delta`` to ``target``-domain topics when ``present`` fires without ``absent``."""

    present: str
    absent: str
    target: str
    delta: int


@dataclass(frozen=True)
class HintRules:
    signals: tuple[DomainSignal, ...] = ()
    boosts: tuple[TopicBoost, ...] = ()
    penalties: tuple[CrossDomainPenalty, ...] = ()

    def signal(self, name: str) -> DomainSignal:
        for candidate in self.signals:
            if candidate.name == name:
                return candidate
        raise KeyError(f"Unknown domain signal: {name}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HintRules":
        unknown = set(data) - {"signals", "boosts", "penalties"}
        if unknown:
            raise ValueError(f"Unknown hint rule keys: {sorted(unknown)}")
        return cls(
            signals=tuple(
                DomainSignal(
                    name=s["name"],
                    hints=frozenset(s.get("hints", ())),
                    topic_markers=tuple(s.get("topic_markers", ())),
                    excluded_markers=tuple(s.get("excluded_markers", ())),
                )
                for s in data.get("signals", ())
            ),
            boosts=tuple(
                TopicBoost(signal=b["signal"], markers=tuple(b["markers"]), delta=int(b["delta"]))
                for b in data.get("boosts", ())
            ),
            penalties=tuple(CrossDomainPenalty(**p) for p in data.get("penalties", ())),
        )


GEOMETRY = DomainSignal(
    name="geometry",
    hints=frozenset(
        {
            "angle", "angles", "triangle", "triangles", "circle", "circles", "sphere",
            "distance", "length", "area", "perimeter", "radius", "diameter", "chord",
            "slope", "midpoint", "line", "lines", "plane", "planes",
            "coordinate", "coordinates", "axis", "axes", "polygon", "polygons",
            "parallel", "perpendicular", "intersection",
            "dot", "cross", "projection", "rotate", "rotation", "reflect", "reflection",
            "norm", "magnitude", "unit", "direction", "2d", "3d",
        }
    ),
    topic_markers=("geometry",),
)

LINEAR_ALGEBRA = DomainSignal(
    name="linear_algebra",
    hints=frozenset(
        {
            "matrix", "matrices", "determinant", "det", "rank",
            "eigen", "eigenvalue", "eigenvalues", "eigenvector", "eigenvectors",
            "basis", "span", "subspace", "nullspace", "kernel", "image",
            "independent", "independence", "dependent", "dependence",
            "diagonal", "invertible", "inverse", "gaussian", "elimination",
            "orthonormal", "orthogonal", "linalg",
        }
    ),
    topic_markers=("linear algebra", "linalg", "matrix", "matrices"),
)

EUCLIDEAN = DomainSignal(
    name="euclidean",
    hints=frozenset(
        {
            "euclid", "postulate", "postulates", "axiom", "axioms", "congruent",
            "congruence", "compass", "straightedge", "similarity", "inscribed",
        }
    ),
    topic_markers=("euclidean", "plane geometry", "synthetic geometry"),
    excluded_markers=("non-euclidean", "non euclidean", "noneuclidean"),
)

NON_EUCLIDEAN = DomainSignal(
    name="non_euclidean",
    hints=frozenset(
        {
            "hyperbolic", "elliptic", "spherical", "lobachevsky", "riemannian",
            "geodesic", "geodesics", "curvature", "poincare", "noneuclidean",
        }
    ),
    topic_markers=(
        "non-euclidean", "non euclidean", "noneuclidean", "hyperbolic", "elliptic geometry",
        "spherical geometry", "differential geometry",
    ),
)

DEFAULT_HINT_RULES = HintRules(
    signals=(GEOMETRY, LINEAR_ALGEBRA, EUCLIDEAN, NON_EUCLIDEAN),
    boosts=(
        TopicBoost(signal="geometry", markers=("geometry",), delta=10),
        TopicBoost(signal="geometry", markers=("coordinate",), delta=4),
        TopicBoost(signal="linear_algebra", markers=("linear algebra", "linalg"), delta=6),
        TopicBoost(signal="linear_algebra", markers=("matrix",), delta=2),
    ),
    penalties=(
        CrossDomainPenalty(present="geometry", absent="linear_algebra", target="linear_algebra", delta=-8),
        CrossDomainPenalty(present="linear_algebra", absent="geometry", target="geometry", delta=-8),
        CrossDomainPenalty(present="euclidean", absent="non_euclidean", target="non_euclidean", delta=-8),
        CrossDomainPenalty(present="non_euclidean", absent="euclidean", target="euclidean", delta=-8),
    ),
)


@dataclass(frozen=True)
class TokenizerRules:
    """Query/topic tokenization: tokens shorter than three characters are
    dropped unless allowlisted."""

    short_tokens: frozenset[str] = field(default_factory=lambda: frozenset({"2d", "3d"}))
    stopwords: frozenset[str] = field(
        default_factory=lambda: frozenset(
            {
                "the", "and", "for", "with", "from", "this", "that", "into", "over",
                "under", "then", "than", "when", "where", "what", "which", "whose",
                "your", "you", "are", "was", "were", "have", "has", "had", "not",
                "but", "can", "will", "its", "let", "use", "using", "used", "also", "only",
            }
        )
    )
