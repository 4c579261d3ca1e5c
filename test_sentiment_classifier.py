import numpy as np
import pytest

from analyzers.exceptions import StratificationError
from analyzers.sentiment import SentimentClassifier

SMALL_GRID = {'n_estimators': [20], 'max_depth': [2]}

def make_topic_features(n_per_class=50, k=10, seed=0):
    """Dirichlet topic proportions; positive documents lean towards topic 0."""
    rng = np.random.RandomState(seed)
    positive_alpha = np.ones(k)
    positive_alpha[0] = 5.0
    negative_alpha = np.ones(k)
    negative_alpha[1] = 5.0
    features = np.vstack([
        rng.dirichlet(positive_alpha, n_per_class),
        rng.dirichlet(negative_alpha, n_per_class)
    ])
    labels = ['positive'] * n_per_class + ['negative'] * n_per_class
    ids = [f"doc_{i:03d}" for i in range(2 * n_per_class)]
    return features, labels, ids

@pytest.fixture
def classifier():
    return SentimentClassifier(seed=3, param_grid=SMALL_GRID, cv_folds=3)

def test_held_out_metrics_on_stratified_split(classifier):
    features, labels, ids = make_topic_features()

    results = classifier.fit_evaluate(features, labels, ids)

    metrics = results['metrics']
    assert 0.0 <= metrics['accuracy'] <= 1.0
    assert 0.0 <= metrics['roc_auc'] <= 1.0
    assert metrics['n_test'] == 20
    assert metrics['n_train'] == 80
    assert sum(metrics['confusion_matrix'].values()) == metrics['n_test']

    predictions = results['predictions']
    assert predictions.columns.tolist() == ['id', 'probability', 'predicted', 'actual']
    assert len(predictions) == 20
    assert predictions['id'].is_unique
    assert predictions['actual'].value_counts().to_dict() == {'positive': 10, 'negative': 10}
    assert predictions['probability'].between(0, 1).all()
    assert len(results['feature_importances']) == 10

def test_signal_is_learned(classifier):
    features, labels, ids = make_topic_features(n_per_class=100)

    metrics = classifier.fit_evaluate(features, labels, ids)['metrics']

    assert metrics['roc_auc'] > 0.8

def test_uses_corpus_split_tags(classifier):
    features, labels, ids = make_topic_features()
    tags = ['test' if i % 4 == 0 else 'train' for i in range(len(ids))]

    results = classifier.fit_evaluate(features, labels, ids, split_tags=tags)

    expected = {doc_id for doc_id, tag in zip(ids, tags) if tag == 'test'}
    assert set(results['predictions']['id']) == expected
    assert results['metrics']['n_test'] == 25

def test_single_class_is_fatal(classifier):
    features, _, ids = make_topic_features()

    with pytest.raises(StratificationError):
        classifier.fit_evaluate(features, ['positive'] * len(ids), ids)

def test_singleton_class_is_fatal(classifier):
    features, _, ids = make_topic_features()
    labels = ['negative'] + ['positive'] * (len(ids) - 1)

    with pytest.raises(StratificationError):
        classifier.fit_evaluate(features, labels, ids)

def test_corpus_split_missing_class_is_fatal(classifier):
    features, labels, ids = make_topic_features()
    tags = ['test' if label == 'positive' else 'train' for label in labels]

    with pytest.raises(StratificationError):
        classifier.fit_evaluate(features, labels, ids, split_tags=tags)

def test_unknown_label_rejected():
    with pytest.raises(ValueError):
        SentimentClassifier.encode_labels(['positive', 'meh'])

def test_encode_labels_accepts_aliases():
    assert SentimentClassifier.encode_labels(['POS', 'neg', 'negative']).tolist() == [1, 0, 0]
