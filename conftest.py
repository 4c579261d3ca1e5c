import numpy as np
import pandas as pd
import pytest

from analyzers.topic import TopicModelSelector
from utils.corpus import build_document_term_table

POSITIVE_TERMS = [
    'brilliant', 'superb', 'wonderful', 'charming', 'masterpiece',
    'delightful', 'moving', 'stunning', 'gripping', 'hilarious'
]
NEGATIVE_TERMS = [
    'boring', 'awful', 'terrible', 'dull', 'clumsy',
    'tedious', 'wooden', 'predictable', 'pointless', 'mess'
]

def make_reviews(n_per_class: int = 50, words_per_review: int = 30, seed: int = 0) -> pd.DataFrame:
    """
    Synthetic labeled reviews over a 20-term vocabulary. Positive reviews
    draw 80% of their words from the positive terms, negative reviews 80%
    from the negative terms.
    """
    rng = np.random.RandomState(seed)
    rows = []
    for i in range(2 * n_per_class):
        positive = i % 2 == 0
        main, other = (POSITIVE_TERMS, NEGATIVE_TERMS) if positive else (NEGATIVE_TERMS, POSITIVE_TERMS)
        words = [
            rng.choice(main) if rng.rand() < 0.8 else rng.choice(other)
            for _ in range(words_per_review)
        ]
        rows.append({
            'id': f"doc_{i:03d}",
            'text': " ".join(words) + " <br /><br />",
            'sentiment': 'positive' if positive else 'negative',
            'split': 'train' if i < n_per_class else 'test',
            'rating': int(rng.randint(7, 11)) if positive else int(rng.randint(1, 5))
        })
    return pd.DataFrame(rows)

@pytest.fixture(scope='session')
def synthetic_reviews():
    """100 reviews (50 positive, 50 negative) over 20 terms."""
    return make_reviews()

@pytest.fixture(scope='session')
def synthetic_table(synthetic_reviews):
    return build_document_term_table(synthetic_reviews, no_below=1, no_above=1.0)

@pytest.fixture(scope='session')
def small_selector():
    return TopicModelSelector(seed=7, passes=5, iterations=50)

@pytest.fixture(scope='session')
def selection(small_selector, synthetic_table):
    """Selection over k in {2, 3} on the synthetic table."""
    return small_selector.run(synthetic_table, [2, 3])
