import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence, Set

import numpy as np
import pandas as pd
from gensim.corpora import Dictionary
from gensim.matutils import corpus2csc
from scipy import sparse
from tqdm import tqdm

from analyzers.exceptions import CorpusLoadError
from config import (
    REQUIRED_COLUMNS,
    VALID_SPLITS,
    MIN_RATING,
    MAX_RATING,
    NO_BELOW,
    NO_ABOVE,
    KEEP_N
)
from configs.models import SentimentLabels
from utils.text_processing import preprocess_text, get_stop_words

def load_reviews(path: str, column_map: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Load labeled movie reviews from a CSV file.

    Malformed rows never abort the load: lines the CSV parser cannot split
    into the header's field count are skipped, as are rows with a missing
    id or text, a duplicate id, an unknown sentiment or split, or a rating
    outside MIN_RATING..MAX_RATING. Every skip is counted by reason.

    Args:
        path: Path to the CSV file.
        column_map: Optional {logical column: file header} mapping, e.g.
            {'text': 'review', 'split': 'set'}. Logical columns are
            id, text, sentiment, split and rating.

    Returns:
        A dictionary with:
          - 'documents': DataFrame with columns id, text, sentiment, split, rating
          - 'rows_read': number of data rows seen (including skipped ones)
          - 'rows_skipped': number of rows dropped
          - 'skip_reasons': {reason: count}

    Raises:
        CorpusLoadError: If the file is missing or lacks a required column.
    """
    bad_lines = []

    def _skip_bad_line(fields: List[str]) -> None:
        bad_lines.append(fields)
        return None

    try:
        raw = pd.read_csv(
            path,
            dtype=str,
            engine='python',
            on_bad_lines=_skip_bad_line
        )
    except FileNotFoundError as e:
        raise CorpusLoadError(f"Review file not found: {path}") from e
    except pd.errors.EmptyDataError as e:
        raise CorpusLoadError(f"Review file is empty: {path}") from e

    if column_map:
        raw = raw.rename(columns={header: name for name, header in column_map.items()})

    missing = [column for column in REQUIRED_COLUMNS if column not in raw.columns]
    if missing:
        raise CorpusLoadError(f"Review file {path} is missing required columns: {missing}")

    raw = raw[REQUIRED_COLUMNS].copy()
    reasons = pd.Series(None, index=raw.index, dtype=object)

    def _flag(mask: pd.Series, reason: str) -> None:
        reasons[mask & reasons.isna()] = reason

    ids = raw['id'].str.strip()
    _flag(ids.isna() | (ids == ''), 'missing_id')

    texts = raw['text']
    _flag(texts.isna() | (texts.str.strip() == ''), 'missing_text')

    sentiments = raw['sentiment'].map(SentimentLabels.normalize)
    _flag(sentiments.isna(), 'invalid_sentiment')

    splits = raw['split'].str.strip().str.lower()
    _flag(~splits.isin(VALID_SPLITS), 'invalid_split')

    ratings = pd.to_numeric(raw['rating'], errors='coerce')
    valid_rating = (
        ratings.notna()
        & (ratings == ratings.round())
        & ratings.between(MIN_RATING, MAX_RATING)
    )
    _flag(~valid_rating, 'invalid_rating')

    # A repeated id is checked against earlier valid rows only
    valid_ids = ids[reasons.isna()]
    duplicated = valid_ids.duplicated(keep='first').reindex(raw.index, fill_value=False)
    _flag(duplicated, 'duplicate_id')

    keep = reasons.isna()
    documents = pd.DataFrame({
        'id': ids[keep],
        'text': texts[keep],
        'sentiment': sentiments[keep],
        'split': splits[keep],
        'rating': ratings[keep].astype(int)
    }).reset_index(drop=True)

    skip_reasons = Counter(reasons.dropna().tolist())
    if bad_lines:
        skip_reasons['unparseable_line'] += len(bad_lines)

    rows_skipped = sum(skip_reasons.values())
    rows_read = len(raw) + len(bad_lines)

    if rows_skipped:
        logging.warning(
            f"Skipped {rows_skipped} of {rows_read} rows in {path}: {dict(skip_reasons)}"
        )
    logging.info(f"Loaded {len(documents)} reviews from {path}")

    return {
        'documents': documents,
        'rows_read': rows_read,
        'rows_skipped': rows_skipped,
        'skip_reasons': dict(skip_reasons)
    }

def reduce_corpus(documents: pd.DataFrame, target_size: int, seed: int) -> pd.DataFrame:
    """
    Reduce the corpus while maintaining sentiment distribution ratios.

    Args:
        documents: Reviews as returned by load_reviews.
        target_size: Desired number of reviews.
        seed: Sampling seed.

    Returns:
        A shuffled sample; the input unchanged if it is already small enough.
    """
    if target_size <= 0:
        raise ValueError("target_size must be positive")

    if target_size >= len(documents):
        return documents

    total = len(documents)
    counts = documents['sentiment'].value_counts()
    ratios = {
        sentiment: int((count / total) * target_size)
        for sentiment, count in counts.items()
    }

    logging.info(f"Original distribution: {counts.to_dict()}")
    logging.info(f"Target distribution: {ratios}")

    # Sample from each group according to ratios
    sampled = [
        documents[documents['sentiment'] == sentiment].sample(n=count, random_state=seed)
        for sentiment, count in sorted(ratios.items())
    ]
    reduced = pd.concat(sampled)

    # Shuffle the combined results
    return reduced.sample(frac=1.0, random_state=seed).reset_index(drop=True)

class DocumentTermTable:
    """
    Read-only document-term count table.

    Holds the gensim Dictionary, the bag-of-words corpus (one list of
    (term id, count) pairs per document), the tokenized texts restricted to
    the vocabulary (needed by text-based coherence measures) and the
    document ids in corpus order.
    """

    def __init__(self, dictionary: Dictionary, corpus: List[List[tuple]],
                 texts: List[List[str]], doc_ids: Sequence[str]):
        if not (len(corpus) == len(texts) == len(doc_ids)):
            raise ValueError("corpus, texts and doc_ids must have the same length")
        self.dictionary = dictionary
        self.corpus = corpus
        self.texts = texts
        self.doc_ids = list(doc_ids)

    @classmethod
    def from_token_lists(cls, token_lists: List[List[str]], doc_ids: Sequence[str],
                         no_below: int = NO_BELOW, no_above: float = NO_ABOVE,
                         keep_n: int = KEEP_N) -> 'DocumentTermTable':
        """
        Build the table from already tokenized documents.

        Terms are filtered with Dictionary.filter_extremes; documents left
        without tokens stay in the table with zero counts.
        """
        dictionary = Dictionary(token_lists)
        dictionary.filter_extremes(no_below=no_below, no_above=no_above, keep_n=keep_n)

        token2id = dictionary.token2id
        texts = [[token for token in tokens if token in token2id] for tokens in token_lists]
        corpus = [dictionary.doc2bow(tokens) for tokens in texts]
        return cls(dictionary, corpus, texts, doc_ids)

    @property
    def num_docs(self) -> int:
        return len(self.corpus)

    @property
    def num_terms(self) -> int:
        return len(self.dictionary)

    @property
    def num_tokens(self) -> int:
        return int(sum(count for doc in self.corpus for _, count in doc))

    @property
    def is_empty(self) -> bool:
        return self.num_docs == 0 or self.num_tokens == 0

    def to_sparse(self) -> sparse.csr_matrix:
        """Export as a (num_docs, num_terms) CSR count matrix."""
        if self.num_docs == 0:
            return sparse.csr_matrix((0, self.num_terms), dtype=np.int64)
        matrix = corpus2csc(self.corpus, num_terms=self.num_terms,
                            num_docs=self.num_docs, dtype=np.int64)
        return matrix.T.tocsr()

    def __repr__(self) -> str:
        return (f"DocumentTermTable(num_docs={self.num_docs}, "
                f"num_terms={self.num_terms}, num_tokens={self.num_tokens})")

def build_document_term_table(documents: pd.DataFrame,
                              no_below: int = NO_BELOW,
                              no_above: float = NO_ABOVE,
                              keep_n: int = KEEP_N,
                              stop_words: Optional[Set[str]] = None,
                              verbose: bool = False) -> DocumentTermTable:
    """
    Preprocess every review and build the document-term table.

    Args:
        documents: DataFrame with at least 'id' and 'text' columns.
        no_below: Minimum document frequency for a term to be kept.
        no_above: Maximum document fraction for a term to be kept.
        keep_n: Vocabulary cap.
        stop_words: Words to remove; defaults to get_stop_words().
        verbose: Show a progress bar.

    Returns:
        A DocumentTermTable with one document per input row, in input order.
    """
    if stop_words is None:
        stop_words = get_stop_words()

    texts = documents['text'].tolist()
    token_lists = [
        preprocess_text(text, stop_words)
        for text in tqdm(texts, desc="Tokenizing reviews", disable=not verbose)
    ]

    table = DocumentTermTable.from_token_lists(
        token_lists,
        documents['id'].tolist(),
        no_below=no_below,
        no_above=no_above,
        keep_n=keep_n
    )

    empty_docs = sum(1 for doc in table.corpus if not doc)
    if empty_docs:
        logging.warning(f"{empty_docs} reviews have no tokens left after filtering")
    logging.info(f"Built {table!r}")
    return table
