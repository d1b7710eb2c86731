"""Face descriptor comparison.

Descriptors are produced client-side by the recognition model; the server only
stores them and compares a candidate against the enrolled vector.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

import constants


class InvalidDescriptor(ValueError):
    pass


@dataclass(frozen=True)
class FaceMatch:
    similarity: float
    threshold: float

    @property
    def matched(self) -> bool:
        return self.similarity >= self.threshold


def to_vector(descriptor: Sequence[float], length: int = None) -> np.ndarray:
    length = length or constants.FACE_DESCRIPTOR_LENGTH
    try:
        vector = np.asarray(descriptor, dtype=np.float64)
    except (TypeError, ValueError):
        raise InvalidDescriptor("Face descriptor must be a list of numbers")
    if vector.ndim != 1 or vector.shape[0] != length:
        raise InvalidDescriptor(f"Face descriptor must have {length} values")
    if not np.all(np.isfinite(vector)):
        raise InvalidDescriptor("Face descriptor contains non-finite values")
    if not np.any(vector):
        raise InvalidDescriptor("Face descriptor is all zeros")
    return vector


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    den = np.linalg.norm(a) * np.linalg.norm(b)
    if den == 0:
        return 0.0
    return float(np.dot(a, b) / den)


def match_descriptor(candidate, enrolled, threshold: float = None) -> FaceMatch:
    threshold = constants.FACE_MATCH_THRESHOLD if threshold is None else threshold
    similarity = cosine_similarity(to_vector(candidate), to_vector(enrolled))
    return FaceMatch(similarity=round(similarity, 6), threshold=threshold)
