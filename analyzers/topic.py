import logging
from collections import Counter
from functools import partial
from multiprocessing import Pool
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from gensim.models import CoherenceModel, LdaModel
from tqdm import tqdm

from config import RANDOM_SEED, N_JOBS
from configs.topic_config import TOPIC_CONFIG
from .exceptions import TopicFitError, TopicSelectionError
from .records import TopicCandidate, SelectionResult

def fit_topic_candidate(table,
                        k: int,
                        seed: int = RANDOM_SEED,
                        passes: int = TOPIC_CONFIG['passes'],
                        iterations: int = TOPIC_CONFIG['iterations'],
                        coherence_measures: Sequence[str] = tuple(TOPIC_CONFIG['coherence_measures']),
                        topn: int = TOPIC_CONFIG['topn'],
                        coherence_processes: int = TOPIC_CONFIG['coherence_processes']) -> TopicCandidate:
    """
    Fit one LDA model with k topics and score it.

    The seed is passed to gensim as the model's own random_state, so fits
    for different k share no random state and can run in any order or in
    parallel. Everything computed afterwards (bound, inference, coherence)
    happens in a fixed order, so refitting with the same table and seed
    reproduces the diagnostics exactly.

    Args:
        table: DocumentTermTable to fit on.
        k: Number of topics.
        seed: Random seed for the model.
        passes: Passes over the corpus during training.
        iterations: Maximum variational iterations per document.
        coherence_measures: gensim coherence measures to compute.
        topn: Top terms per topic used by the coherence measures.
        coherence_processes: Processes for text-based coherence estimation.

    Returns:
        A TopicCandidate with diagnostics:
          - 'perplexity': 2 ** (-per-word likelihood bound), on the training table
          - 'log_likelihood': the variational bound on the corpus log-likelihood
          - one entry per coherence measure

    Raises:
        TopicFitError: If the table is empty, or k is not in 1..num_terms.
    """
    if table.is_empty:
        raise TopicFitError(k, "document-term table is empty")
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)) or k < 1:
        raise TopicFitError(k, "topic count must be a positive integer")
    if k > table.num_terms:
        raise TopicFitError(k, f"only {table.num_terms} terms are available")

    model = LdaModel(
        corpus=table.corpus,
        id2word=table.dictionary,
        num_topics=int(k),
        passes=passes,
        iterations=iterations,
        random_state=seed,
        alpha='symmetric',
        eval_every=None,
        dtype=np.float64
    )

    log_likelihood = float(model.bound(table.corpus))
    perplexity = float(np.exp2(-log_likelihood / table.num_tokens))

    # Variational posterior over topics, normalized to proportions per document
    gamma, _ = model.inference(table.corpus)
    doc_topic = gamma / gamma.sum(axis=1, keepdims=True)

    diagnostics = {'perplexity': perplexity, 'log_likelihood': log_likelihood}
    topic_coherence = []
    for measure in coherence_measures:
        coherence_model = CoherenceModel(
            model=model,
            texts=table.texts,
            corpus=table.corpus,
            dictionary=table.dictionary,
            coherence=measure,
            topn=min(topn, table.num_terms),
            processes=coherence_processes
        )
        per_topic = coherence_model.get_coherence_per_topic()
        score = float(coherence_model.aggregate_measures(per_topic))
        if not np.isfinite(score):
            logging.warning(f"{measure} coherence is not finite for k={k}")
            score = float('nan')
        diagnostics[measure] = score
        if measure == 'c_v':
            topic_coherence = [float(value) for value in per_topic]

    return TopicCandidate(
        k=int(k),
        seed=seed,
        model=model,
        topic_term=model.get_topics(),
        doc_topic=doc_topic,
        diagnostics=diagnostics,
        topic_coherence=topic_coherence
    )

def _fit_or_report(k: int, table, **params) -> Tuple[int, Optional[TopicCandidate], Optional[str]]:
    """Pool worker: fit one candidate, turning a TopicFitError into a reason string."""
    try:
        return k, fit_topic_candidate(table, k, **params), None
    except TopicFitError as e:
        return k, None, e.reason

def select_topic_count(diagnostics: pd.DataFrame,
                       coherence_measures: Sequence[str],
                       tolerance: float = TOPIC_CONFIG['selection_tolerance']) -> Tuple[int, Dict[str, Optional[int]]]:
    """
    Choose a topic count from a diagnostics table by coherence voting.

    Each coherence measure (higher is better) votes for the smallest k whose
    score is within `tolerance` of its best score, i.e. where the measure
    peaks or plateaus. The margin is `tolerance` times the larger of the
    measure's range across candidates and the magnitude of its best score,
    so two nearly equal candidates tie even when they are the only two.
    Measures with no finite score abstain. The k with the most votes wins;
    ties go to the smaller k. If every measure abstains the smallest k is
    chosen. Perplexity and log-likelihood never vote.

    Args:
        diagnostics: Table with a 'k' column and one column per measure.
        coherence_measures: Measures allowed to vote.
        tolerance: Plateau width as a fraction of the measure's range or best score.

    Returns:
        (chosen k, {measure: k voted for, or None})
    """
    if diagnostics.empty:
        raise TopicSelectionError("No fitted candidates to select from")
    if not 0 <= tolerance < 1:
        raise ValueError("tolerance must be in [0, 1)")

    votes = {}
    for measure in coherence_measures:
        if measure not in diagnostics.columns:
            votes[measure] = None
            continue
        scores = diagnostics[['k', measure]].replace([np.inf, -np.inf], np.nan).dropna()
        if scores.empty:
            logging.warning(f"{measure} has no finite scores and abstains")
            votes[measure] = None
            continue
        best = scores[measure].max()
        spread = best - scores[measure].min()
        threshold = best - tolerance * max(spread, abs(best))
        votes[measure] = int(scores.loc[scores[measure] >= threshold, 'k'].min())

    tally = Counter(k for k in votes.values() if k is not None)
    if not tally:
        chosen = int(diagnostics['k'].min())
        logging.warning(f"No coherence measure voted; falling back to smallest k={chosen}")
        return chosen, votes

    most_votes = max(tally.values())
    chosen = min(k for k, count in tally.items() if count == most_votes)
    return int(chosen), votes

class TopicModelSelector:
    """
    Fit one LDA model per candidate topic count, score each with perplexity,
    log-likelihood and several coherence measures, and pick one k.

    Args:
        seed: Seed threaded into every fit.
        passes: Training passes per model.
        iterations: Variational iterations per document.
        coherence_measures: Coherence measures computed and used for voting.
        topn: Top terms per topic used by coherence.
        tolerance: Plateau tolerance for the voting rule.
        n_jobs: Worker processes for candidate fits (1 means sequential).
        verbose: Show a progress bar over candidates.

    References:
        - "Finding scientific topics" (Griffiths & Steyvers, 2004)
        - "A heuristic approach to determine an appropriate number of topics in LDA models"
          (Zhao et al., 2015)
    """

    def __init__(self, seed: int = RANDOM_SEED,
                 passes: int = TOPIC_CONFIG['passes'],
                 iterations: int = TOPIC_CONFIG['iterations'],
                 coherence_measures: Optional[Sequence[str]] = None,
                 topn: int = TOPIC_CONFIG['topn'],
                 tolerance: float = TOPIC_CONFIG['selection_tolerance'],
                 n_jobs: int = N_JOBS,
                 verbose: bool = False):
        self.seed = seed
        self.passes = passes
        self.iterations = iterations
        self.coherence_measures = list(coherence_measures or TOPIC_CONFIG['coherence_measures'])
        self.topn = topn
        self.tolerance = tolerance
        self.n_jobs = max(1, n_jobs)
        self.verbose = verbose

        self.candidates: List[TopicCandidate] = []
        self.failures: Dict[int, str] = {}

    @staticmethod
    def _normalize_candidates(candidates: Iterable[int]) -> List[int]:
        """Deduplicate and sort candidate topic counts; reject non-integers."""
        normalized = set()
        for k in candidates:
            if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
                raise TopicSelectionError(f"Candidate topic counts must be integers, got {k!r}")
            normalized.add(int(k))
        if not normalized:
            raise TopicSelectionError("At least one candidate topic count is required")
        return sorted(normalized)

    def _fit_params(self) -> Dict[str, object]:
        return {
            'seed': self.seed,
            'passes': self.passes,
            'iterations': self.iterations,
            'coherence_measures': tuple(self.coherence_measures),
            'topn': self.topn,
            'coherence_processes': TOPIC_CONFIG['coherence_processes']
        }

    def fit_candidates(self, table, candidates: Iterable[int]) -> Tuple[List[TopicCandidate], Dict[int, str]]:
        """
        Fit every candidate topic count.

        A candidate that cannot be fitted is excluded and its reason is
        recorded; the remaining candidates are still fitted.

        Returns:
            (fitted candidates in ascending k, {k: failure reason})
        """
        ks = self._normalize_candidates(candidates)
        worker = partial(_fit_or_report, table=table, **self._fit_params())

        if self.n_jobs > 1 and len(ks) > 1:
            logging.info(f"Fitting {len(ks)} topic models with {self.n_jobs} processes...")
            with Pool(min(self.n_jobs, len(ks))) as pool:
                outcomes = pool.map(worker, ks)
        else:
            outcomes = [
                worker(k) for k in tqdm(ks, desc="Fitting topic models", disable=not self.verbose)
            ]

        fitted = []
        failures = {}
        for k, candidate, reason in outcomes:
            if candidate is None:
                logging.warning(f"Excluding candidate k={k}: {reason}")
                failures[k] = reason
            else:
                logging.info(f"Fitted k={k}: {candidate.diagnostics}")
                fitted.append(candidate)

        self.candidates = fitted
        self.failures = failures
        return fitted, failures

    def diagnostics_table(self, candidates: Sequence[TopicCandidate]) -> pd.DataFrame:
        """One row per candidate: k, perplexity, log_likelihood and the coherence measures."""
        columns = ['k', 'perplexity', 'log_likelihood'] + self.coherence_measures
        rows = [{'k': candidate.k, **candidate.diagnostics} for candidate in candidates]
        return pd.DataFrame(rows, columns=columns).sort_values('k').reset_index(drop=True)

    @staticmethod
    def check_likelihood_trends(diagnostics: pd.DataFrame) -> List[str]:
        """
        Perplexity should not rise and log-likelihood should not fall as k
        grows. Violations are only reported; they never affect selection.
        """
        warnings = []
        if len(diagnostics) < 2:
            return warnings

        ordered = diagnostics.sort_values('k')
        if (ordered['perplexity'].diff().dropna() > 0).any():
            warnings.append("perplexity increases with k")
        if (ordered['log_likelihood'].diff().dropna() < 0).any():
            warnings.append("log-likelihood decreases with k")

        for message in warnings:
            logging.warning(f"Sanity check: {message} for k in {ordered['k'].tolist()}")
        return warnings

    def run(self, table, candidates: Iterable[int]) -> SelectionResult:
        """
        Fit all candidates, build the diagnostics table and select k.

        Raises:
            TopicSelectionError: If no candidate could be fitted.
        """
        fitted, failures = self.fit_candidates(table, candidates)
        if not fitted:
            raise TopicSelectionError(
                f"No candidate topic count could be fitted: {failures}"
            )

        diagnostics = self.diagnostics_table(fitted)
        self.check_likelihood_trends(diagnostics)

        chosen_k, votes = select_topic_count(diagnostics, self.coherence_measures, self.tolerance)
        chosen = next(candidate for candidate in fitted if candidate.k == chosen_k)
        logging.info(f"Selected k={chosen_k} (votes: {votes})")

        return SelectionResult(
            diagnostics=diagnostics,
            chosen_k=chosen_k,
            chosen=chosen,
            votes=votes,
            failures=failures
        )

    def cleanup(self):
        """
        Resource cleanup to free memory references.
        Drops fitted candidates and recorded failures.
        """
        self.candidates = []
        self.failures = {}
