import json
import os

import numpy as np
import pytest

from config import INPUT_DATA_FOLDER, REPORT_FOLDER
from configs.models import ClassifierConfig
from conftest import make_reviews
from review_topic_analysis import build_report, main, parse_arguments, run_pipeline, write_outputs
from utils.report_generator import generate_pdf_report

SMALL_GRID = {'n_estimators': [20], 'max_depth': [2]}

def _arguments(input_path, output_dir, *extra):
    return parse_arguments([
        '-i', input_path,
        '-k', '10',
        '--no-below', '1',
        '--no-above', '1.0',
        '-o', output_dir,
        *extra
    ])

@pytest.fixture(scope='module')
def reviews_csv(tmp_path_factory):
    path = tmp_path_factory.mktemp('data') / 'reviews.csv'
    make_reviews().to_csv(path, index=False)
    return str(path)

@pytest.fixture(scope='module')
def pipeline(reviews_csv, tmp_path_factory):
    """One end-to-end run: 100 reviews, k=10, stratified 80/20 split."""
    output_dir = str(tmp_path_factory.mktemp('report'))
    with pytest.MonkeyPatch.context() as patch:
        patch.setattr(ClassifierConfig, 'PARAM_GRID', SMALL_GRID)
        results = run_pipeline(_arguments(reviews_csv, output_dir))
    return results, output_dir

def test_parse_arguments_defaults():
    args = parse_arguments([])

    assert args.candidates == [5, 10, 15]
    assert not args.use_corpus_split
    assert not args.skip_classifier

def test_pipeline_selects_only_candidate(pipeline):
    results, _ = pipeline

    assert results['loaded']['rows_skipped'] == 0
    assert results['selection'].chosen_k == 10
    assert results['doc_topics'].shape == (100, 10)
    assert len(results['by_sentiment']) == 20
    assert len(results['top_terms']) == 10 * 10

def test_pipeline_classifier_metrics(pipeline):
    results, _ = pipeline
    metrics = results['classifier']['metrics']

    assert 0.0 <= metrics['accuracy'] <= 1.0
    assert 0.0 <= metrics['roc_auc'] <= 1.0
    assert metrics['n_test'] == 20
    assert sum(metrics['confusion_matrix'].values()) == 20
    assert results['classifier']['best_params'] == {'max_depth': 2, 'n_estimators': 20}

def test_pipeline_statistics(pipeline):
    results, _ = pipeline

    assert results['sentiment_divergence'] >= 0.0
    assert 0.0 <= results['topic_diversity'] <= np.log2(10) + 1e-9
    assert set(results['topic_contrast']['topic']) == set(range(10))

def test_write_outputs(pipeline):
    results, output_dir = pipeline

    paths = write_outputs(results, output_dir)

    for name in ('topic_selection', 'topic_terms', 'sentiment_topic_proportions',
                 'rating_topic_proportions', 'classifier_predictions'):
        assert os.path.isfile(paths[name])
    with open(os.path.join(output_dir, 'classifier_metrics.json'), encoding='utf-8') as f:
        summary = json.load(f)
    assert summary['chosen_k'] == 10
    assert summary['classifier']['n_test'] == 20

def test_build_report(pipeline):
    results, output_dir = pipeline

    report_path = build_report(results, output_dir)

    assert os.path.getsize(report_path) > 0

def test_main_without_classifier(reviews_csv, tmp_path):
    main([
        '-i', reviews_csv, '-k', '2', '3', '--no-below', '1', '--no-above', '1.0',
        '-o', str(tmp_path), '--skip-classifier', '--no-report'
    ])

    with open(tmp_path / 'summary.json', encoding='utf-8') as f:
        summary = json.load(f)
    assert summary['chosen_k'] in (2, 3)
    assert 'classifier' not in summary
    assert not (tmp_path / 'topic_sentiment_report.pdf').exists()

def test_main_exits_on_missing_input(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(['-i', str(tmp_path / 'absent.csv'), '-o', str(tmp_path), '--no-report'])
    assert excinfo.value.code == 1

def test_pipeline_with_corpus_split(reviews_csv, tmp_path, monkeypatch):
    monkeypatch.setattr(ClassifierConfig, 'PARAM_GRID', SMALL_GRID)

    results = run_pipeline(_arguments(reviews_csv, str(tmp_path), '--use-corpus-split'))

    assert results['classifier']['metrics']['n_test'] == 50

@pytest.mark.filterwarnings("error::DeprecationWarning:utils.report_generator")
def test_report_lists_excluded_candidates_and_labels(pipeline, tmp_path):
    results, _ = pipeline
    selection = results['selection']
    report_path = str(tmp_path / 'report.pdf')

    generate_pdf_report(
        report_path,
        corpus_summary={'rows_read': 100, 'rows_skipped': 2,
                        'skip_reasons': {'missing_text': 1, 'duplicate_id': 1}},
        selection={
            'diagnostics': selection.diagnostics,
            'chosen_k': selection.chosen_k,
            'votes': selection.votes,
            'failures': {40: "only 20 terms are available", 50: "only 20 terms are available"},
            'coherence_measures': list(selection.votes)
        },
        top_terms=results['top_terms'],
        aggregation=results['by_sentiment'],
        classifier_results=results['classifier'],
        topic_labels={0: 'praise', 1: 'complaints'},
        example_reviews=[{'id': 'r1', 'sentiment': 'positive', 'text': 'Superb<br />cast & crew'}]
    )

    assert os.path.getsize(report_path) > 0

def test_main_creates_standard_folders_for_default_input(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit):
        main(['--no-report'])

    assert (tmp_path / INPUT_DATA_FOLDER).is_dir()
    assert (tmp_path / REPORT_FOLDER).is_dir()
