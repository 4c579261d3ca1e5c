"""
Data records passed between the topic selection, aggregation and
classification stages.

Each stage consumes the outputs of the previous one and never mutates them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd


@dataclass
class TopicCandidate:
    """
    One fitted topic model for a single topic count.

    Attributes:
        k: Number of topics.
        seed: Seed the model was fitted with.
        model: The fitted gensim LdaModel.
        topic_term: Array (k, num_terms); row t is topic t's term distribution.
        doc_topic: Array (num_docs, k); row d is document d's topic proportions.
        diagnostics: perplexity, log_likelihood and one entry per coherence measure.
        topic_coherence: Per-topic c_v coherence, when c_v was computed.
    """

    k: int
    seed: int
    model: Any
    topic_term: np.ndarray
    doc_topic: np.ndarray
    diagnostics: Dict[str, float]
    topic_coherence: List[float] = field(default_factory=list)


@dataclass
class SelectionResult:
    """
    Outcome of a topic count selection run.

    Attributes:
        diagnostics: One row per fitted candidate; columns k, perplexity,
            log_likelihood and the coherence measures.
        chosen_k: The selected topic count (always one of the fitted candidates).
        chosen: The selected candidate.
        votes: Coherence measure -> k it voted for (None when it abstained).
        failures: k -> reason, for candidates excluded from the table.
    """

    diagnostics: pd.DataFrame
    chosen_k: int
    chosen: TopicCandidate
    votes: Dict[str, Optional[int]] = field(default_factory=dict)
    failures: Dict[int, str] = field(default_factory=dict)
