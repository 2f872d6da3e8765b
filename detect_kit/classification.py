from __future__ import annotations

from collections.abc import Mapping
from typing import Any, List, Sequence, Union

import numpy as np

from .errors import MissingInput, ShapeMismatch
from .types import Classification

ClassNames = Union[Mapping[int, str], Sequence[str]]


def _label_for(class_names: ClassNames, index: int) -> str:
    if isinstance(class_names, Mapping):
        return class_names.get(index, str(index))
    if 0 <= index < len(class_names):
        return class_names[index]
    return str(index)


def rank_classifications(
    scores: Any,
    class_names: ClassNames,
    top_k: int = 5,
    min_confidence: float = 0.3,
) -> List[Classification]:
    """
    Turn a classifier score vector into the label list shown to the user.

    Takes the `top_k` best scores (stable, so equal scores keep class order),
    then drops those at or below `min_confidence`.
    """

    if scores is None:
        raise MissingInput("scores tensor is required")
    if top_k < 1:
        raise ValueError("top_k must be >= 1")

    s = np.asarray(scores, dtype=np.float64)
    if s.ndim == 2 and s.shape[0] == 1:
        s = s[0]
    if s.ndim != 1:
        raise ShapeMismatch(f"scores must be 1-D, got shape {s.shape}")

    order = np.argsort(-s, kind="stable")[:top_k]
    return [
        Classification(identifier=_label_for(class_names, int(i)), confidence=float(s[i]))
        for i in order
        if s[i] > min_confidence
    ]
