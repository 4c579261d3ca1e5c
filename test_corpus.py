import numpy as np
import pandas as pd
import pytest

from analyzers.exceptions import CorpusLoadError
from utils.corpus import DocumentTermTable, load_reviews, reduce_corpus, build_document_term_table

REVIEWS_CSV = """id,text,sentiment,split,rating
r1,"A brilliant, moving film",positive,train,9
r2,Dull and tedious,negative,test,2
r3,,positive,train,8
r4,Great cast,meh,train,7
r5,Great cast,pos,dev,7
r6,Great cast,pos,train,11
r7,Great cast,NEG,train,x
r1,Duplicate row,positive,train,9
r8,too,many,fields,here,1
r9,Wooden acting,neg,TEST,3
,No id,positive,train,5
"""

@pytest.fixture
def reviews_file(tmp_path):
    path = tmp_path / "reviews.csv"
    path.write_text(REVIEWS_CSV, encoding='utf-8')
    return str(path)

def test_load_reviews_skips_and_counts_bad_rows(reviews_file):
    loaded = load_reviews(reviews_file)

    documents = loaded['documents']
    assert documents['id'].tolist() == ['r1', 'r2', 'r9']
    assert loaded['rows_read'] == 11
    assert loaded['rows_skipped'] == 8
    assert loaded['skip_reasons'] == {
        'missing_text': 1,
        'invalid_sentiment': 1,
        'invalid_split': 1,
        'invalid_rating': 2,
        'duplicate_id': 1,
        'unparseable_line': 1,
        'missing_id': 1
    }

def test_load_reviews_normalizes_labels(reviews_file):
    documents = load_reviews(reviews_file)['documents'].set_index('id')

    assert documents.loc['r9', 'sentiment'] == 'negative'
    assert documents.loc['r9', 'split'] == 'test'
    assert documents.loc['r1', 'text'] == "A brilliant, moving film"
    assert documents['rating'].tolist() == [9, 2, 3]

def test_load_reviews_applies_column_map(tmp_path):
    path = tmp_path / "imdb.csv"
    path.write_text(
        "review_id,review,label,set,stars\n"
        "a,Superb pacing,pos,train,10\n"
        "b,Awful script,neg,test,1\n",
        encoding='utf-8'
    )
    column_map = {'id': 'review_id', 'text': 'review', 'sentiment': 'label',
                  'split': 'set', 'rating': 'stars'}

    loaded = load_reviews(str(path), column_map=column_map)

    assert loaded['rows_skipped'] == 0
    assert loaded['documents']['sentiment'].tolist() == ['positive', 'negative']

def test_load_reviews_rejects_missing_columns(tmp_path):
    path = tmp_path / "partial.csv"
    path.write_text("id,text\n1,Fine\n", encoding='utf-8')

    with pytest.raises(CorpusLoadError, match="missing required columns"):
        load_reviews(str(path))

def test_load_reviews_missing_file(tmp_path):
    with pytest.raises(CorpusLoadError):
        load_reviews(str(tmp_path / "absent.csv"))

def test_reduce_corpus_keeps_sentiment_ratio(synthetic_reviews):
    reduced = reduce_corpus(synthetic_reviews, target_size=40, seed=3)

    assert len(reduced) == 40
    assert reduced['sentiment'].value_counts().to_dict() == {'positive': 20, 'negative': 20}
    assert reduced['id'].is_unique
    pd.testing.assert_frame_equal(reduced, reduce_corpus(synthetic_reviews, 40, seed=3))

def test_reduce_corpus_noop_when_small(synthetic_reviews):
    assert reduce_corpus(synthetic_reviews, target_size=500, seed=3) is synthetic_reviews

def test_document_term_table_shape(synthetic_reviews, synthetic_table):
    assert synthetic_table.num_docs == 100
    assert synthetic_table.num_terms == 20
    assert synthetic_table.num_tokens == 100 * 30
    assert synthetic_table.doc_ids == synthetic_reviews['id'].tolist()
    assert not synthetic_table.is_empty

def test_document_term_table_sparse_export(synthetic_table):
    matrix = synthetic_table.to_sparse()

    assert matrix.shape == (100, 20)
    np.testing.assert_array_equal(np.asarray(matrix.sum(axis=1)).ravel(), np.full(100, 30))

def test_document_term_table_keeps_empty_documents():
    documents = pd.DataFrame({
        'id': ['a', 'b', 'c'],
        'text': ['gripping plot twist', 'the and of', 'gripping finale']
    })

    table = build_document_term_table(documents, no_below=1, no_above=1.0)

    assert table.num_docs == 3
    assert table.corpus[1] == []
    assert table.texts[1] == []

def test_empty_table_is_empty():
    table = DocumentTermTable.from_token_lists([[], []], ['a', 'b'], no_below=1, no_above=1.0)

    assert table.num_terms == 0
    assert table.is_empty
