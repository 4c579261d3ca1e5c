import json
import logging
from typing import Dict, Mapping, Sequence

import numpy as np
import pandas as pd

from configs.topic_config import TOPIC_CONFIG
from .exceptions import TopicLabelError
from .records import TopicCandidate

class SentimentTopicAggregator:
    """
    Turn a chosen topic model into tables a person can read and label:
    per-document topic proportions, mean proportions per sentiment (or any
    other document label, such as star rating) and ranked top terms per topic.

    Every method is a pure function of its inputs, so repeated calls on the
    same candidate and labels give identical tables.
    """

    def __init__(self, topn: int = TOPIC_CONFIG['topn']):
        self.topn = topn

    @staticmethod
    def document_topic_frame(candidate: TopicCandidate, doc_ids: Sequence[str]) -> pd.DataFrame:
        """
        Per-document topic proportions as a DataFrame indexed by document id,
        with one integer column per topic.
        """
        if len(doc_ids) != candidate.doc_topic.shape[0]:
            raise ValueError(
                f"Expected {candidate.doc_topic.shape[0]} document ids, got {len(doc_ids)}"
            )
        frame = pd.DataFrame(
            candidate.doc_topic,
            index=pd.Index(list(doc_ids), name='id'),
            columns=range(candidate.k)
        )
        frame.columns.name = 'topic'
        return frame

    @staticmethod
    def aggregate_by(doc_topics: pd.DataFrame, labels: Mapping, label_name: str) -> pd.DataFrame:
        """
        Mean topic proportion per (label value, topic).

        Args:
            doc_topics: Output of document_topic_frame.
            labels: Document id -> label value (dict or Series).
            label_name: Name of the label column in the output.

        Returns:
            Long table with columns [label_name, 'topic', 'mean_proportion'],
            sorted by label value then topic. Documents without a label
            are left out.
        """
        label_series = labels if isinstance(labels, pd.Series) else pd.Series(dict(labels), dtype=object)
        aligned = label_series.reindex(doc_topics.index)

        missing = int(aligned.isna().sum())
        if missing:
            logging.warning(f"{missing} documents have no {label_name} label and are left out")

        labeled = doc_topics[aligned.notna()]
        means = labeled.groupby(aligned[aligned.notna()].rename(label_name)).mean()

        table = (
            means.stack()
            .rename('mean_proportion')
            .reset_index()
            .rename(columns={'level_1': 'topic'})
        )
        table['topic'] = table['topic'].astype(int)
        return table.sort_values([label_name, 'topic']).reset_index(drop=True)

    def aggregate_by_sentiment(self, doc_topics: pd.DataFrame, labels: Mapping) -> pd.DataFrame:
        """Mean topic proportion per (sentiment, topic); sums to 1 within each sentiment."""
        return self.aggregate_by(doc_topics, labels, 'sentiment')

    def aggregate_by_rating(self, doc_topics: pd.DataFrame, documents: pd.DataFrame) -> pd.DataFrame:
        """Mean topic proportion per (star rating, topic)."""
        ratings = documents.set_index('id')['rating']
        return self.aggregate_by(doc_topics, ratings, 'rating')

    @staticmethod
    def rank_topics(aggregation: pd.DataFrame, value, label_name: str = 'sentiment') -> pd.DataFrame:
        """Topics for one label value, by descending mean proportion (ties by topic index)."""
        subset = aggregation[aggregation[label_name] == value]
        if subset.empty:
            raise KeyError(f"No rows for {label_name}={value!r}")
        ranked = subset.sort_values(['mean_proportion', 'topic'], ascending=[False, True])
        ranked = ranked.reset_index(drop=True)
        ranked['rank'] = np.arange(1, len(ranked) + 1)
        return ranked

    def top_terms(self, candidate: TopicCandidate, n: int = None) -> pd.DataFrame:
        """
        The n highest-probability terms of each topic, for human labeling.

        Returns:
            Long table with columns ['topic', 'rank', 'term', 'probability'].
        """
        n = min(n or self.topn, candidate.topic_term.shape[1])
        id2word = candidate.model.id2word
        rows = []
        for topic, distribution in enumerate(candidate.topic_term):
            order = np.argsort(-distribution, kind='stable')[:n]
            for rank, term_id in enumerate(order, 1):
                rows.append({
                    'topic': topic,
                    'rank': rank,
                    'term': id2word[int(term_id)],
                    'probability': float(distribution[term_id])
                })
        return pd.DataFrame(rows, columns=['topic', 'rank', 'term', 'probability'])

    @staticmethod
    def term_lists(top_terms: pd.DataFrame) -> Dict[int, list]:
        """{topic: [terms in rank order]} from a top_terms table."""
        ordered = top_terms.sort_values(['topic', 'rank'])
        return {int(topic): group['term'].tolist() for topic, group in ordered.groupby('topic')}

def load_topic_labels(path: str) -> Dict[int, str]:
    """
    Read human topic labels from a JSON object such as {"0": "acting", "1": "plot"}.
    """
    with open(path, 'r', encoding='utf-8') as f:
        raw = json.load(f)

    if not isinstance(raw, dict):
        raise TopicLabelError(f"Topic labels in {path} must be a JSON object")

    labels = {}
    for key, value in raw.items():
        try:
            labels[int(key)] = str(value)
        except ValueError as e:
            raise TopicLabelError(f"Topic label key {key!r} is not a topic index") from e
    return labels

def apply_topic_labels(table: pd.DataFrame, labels: Mapping[int, str], k: int) -> pd.DataFrame:
    """
    Attach human labels to any table with a 'topic' column.

    Labels must use topic indices 0..k-1; topics without a label keep
    a 'Topic <index>' placeholder.

    Raises:
        TopicLabelError: If a label refers to a topic outside the model.
    """
    unknown = sorted(topic for topic in labels if not 0 <= int(topic) < k)
    if unknown:
        raise TopicLabelError(f"Labels given for topics {unknown}, but the model has k={k}")

    labeled = table.copy()
    labeled['label'] = [
        labels.get(int(topic), f"Topic {int(topic)}") for topic in labeled['topic']
    ]
    return labeled
