import logging
from typing import Dict

import numpy as np
import pandas as pd
from scipy.stats import entropy

from configs.models import SentimentLabels

class StatisticalAnalyzer:
    """
    Statistical comparisons between the topic profiles of sentiment groups:
      1. KL divergence between two topic distributions (via scipy.stats.entropy).
      2. Per-topic contrast between positive and negative reviews.
      3. Entropy-based topic diversity of individual documents.
    """

    def calculate_kl_divergence(self, real_dist: Dict, reference_dist: Dict) -> float:
        """
        Calculate the KL divergence between two discrete distributions.

        Steps:
          1. Merge the keys from both distributions to ensure they have
             the same categories.
          2. Create two arrays of probabilities.
          3. Normalize them to sum to 1.
          4. Use scipy.stats.entropy(real, qk=reference) to compute KL.

        Args:
            real_dist: {category: probability}, e.g. positive reviews' topic profile.
            reference_dist: {category: probability}, e.g. negative reviews' profile.

        Returns:
            D_KL(real || reference) >= 0; 0 means the distributions match.
        """
        all_categories = sorted(set(real_dist.keys()) | set(reference_dist.keys()))
        real_array = np.array([real_dist.get(cat, 0.0) for cat in all_categories], dtype=float)
        reference_array = np.array([reference_dist.get(cat, 0.0) for cat in all_categories], dtype=float)

        real_sum = real_array.sum()
        reference_sum = reference_array.sum()
        if real_sum == 0 or reference_sum == 0:
            raise ValueError("KL divergence is undefined for an all-zero distribution")

        real_array /= real_sum
        reference_array /= reference_sum

        return float(entropy(real_array, qk=reference_array))

    def sentiment_profiles(self, aggregation: pd.DataFrame) -> Dict[str, Dict[int, float]]:
        """{sentiment: {topic: mean proportion}} from an aggregate_by_sentiment table."""
        return {
            sentiment: dict(zip(group['topic'].astype(int), group['mean_proportion']))
            for sentiment, group in aggregation.groupby('sentiment')
        }

    def sentiment_divergence(self, aggregation: pd.DataFrame) -> float:
        """KL divergence of the positive topic profile from the negative one."""
        profiles = self.sentiment_profiles(aggregation)
        missing = [label for label in (SentimentLabels.POSITIVE, SentimentLabels.NEGATIVE)
                   if label not in profiles]
        if missing:
            raise ValueError(f"Aggregation has no rows for {missing}")
        divergence = self.calculate_kl_divergence(
            profiles[SentimentLabels.POSITIVE], profiles[SentimentLabels.NEGATIVE]
        )
        logging.info(f"KL(positive || negative) topic profiles: {divergence:.4f}")
        return divergence

    def topic_contrast(self, aggregation: pd.DataFrame) -> pd.DataFrame:
        """
        Positive minus negative mean proportion per topic, largest absolute
        difference first. Columns: topic, positive, negative, difference.
        """
        wide = aggregation.pivot(index='topic', columns='sentiment', values='mean_proportion')
        wide = wide.reindex(columns=[SentimentLabels.POSITIVE, SentimentLabels.NEGATIVE]).fillna(0.0)
        wide['difference'] = wide[SentimentLabels.POSITIVE] - wide[SentimentLabels.NEGATIVE]
        wide = wide.reset_index()
        wide.columns.name = None
        order = wide['difference'].abs().sort_values(ascending=False, kind='stable').index
        return wide.loc[order].reset_index(drop=True)

    def topic_diversity(self, doc_topic: np.ndarray) -> float:
        """
        Mean per-document entropy (bits) of the topic proportions.
        0 means every document sits in one topic; log2(k) means uniform.
        """
        if len(doc_topic) == 0:
            return 0.0
        return float(np.mean(entropy(np.asarray(doc_topic).T, base=2)))
