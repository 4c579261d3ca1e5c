from typing import Dict, Optional

class ClassifierConfig:
    """Configuration class for the topic-proportion sentiment classifier"""
    PARAM_GRID = {
        'n_estimators': [50, 100],
        'max_depth': [2, 3],
        'learning_rate': [0.05, 0.1],
        'subsample': [0.8, 1.0]
    }
    SCORING = 'roc_auc'
    DESCRIPTION = 'Gradient-boosted trees on per-document topic proportions'

class SentimentLabels:
    """Canonical sentiment labels, accepted aliases and binary encoding."""

    POSITIVE = 'positive'
    NEGATIVE = 'negative'

    ALIASES = {
        'positive': POSITIVE,
        'pos': POSITIVE,
        'negative': NEGATIVE,
        'neg': NEGATIVE
    }

    ENCODING = {NEGATIVE: 0, POSITIVE: 1}

    @classmethod
    def normalize(cls, value) -> Optional[str]:
        """Map a raw label to 'positive'/'negative', or None if unrecognized."""
        if not isinstance(value, str):
            return None
        return cls.ALIASES.get(value.strip().lower())

    @classmethod
    def decoding(cls) -> Dict[int, str]:
        return {code: label for label, code in cls.ENCODING.items()}
