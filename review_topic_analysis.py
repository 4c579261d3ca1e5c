import argparse
import os
import json
import sys
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import pandas as pd

from analyzers.aggregation import SentimentTopicAggregator, apply_topic_labels, load_topic_labels
from analyzers.sentiment import SentimentClassifier
from analyzers.statistics import StatisticalAnalyzer
from analyzers.topic import TopicModelSelector
from config import (
    DEFAULT_INPUT_FILE,
    REPORT_FOLDER,
    RANDOM_SEED,
    N_JOBS,
    NO_BELOW,
    NO_ABOVE,
    KEEP_N,
    get_config
)
from configs.topic_config import TOPIC_CONFIG
from utils.corpus import load_reviews, reduce_corpus, build_document_term_table

class ResourceManager:
    """
    Simple manager to handle creation and cleanup of shared resources.
    """
    def __init__(self):
        self.active_resources = []

    def register(self, resource: Any) -> None:
        """Register a resource for cleanup."""
        self.active_resources.append(resource)

    def cleanup(self) -> None:
        """Clean up all registered resources."""
        for resource in reversed(self.active_resources):
            try:
                if hasattr(resource, 'cleanup'):
                    resource.cleanup()
                elif hasattr(resource, 'close'):
                    resource.close()
            except Exception as e:
                logging.error(f"Error cleaning up resource {resource}: {str(e)}")
        self.active_resources.clear()

@contextmanager
def managed_analyzers(seed: int = RANDOM_SEED, n_jobs: int = N_JOBS, verbose: bool = False):
    """
    Context manager for instantiating the pipeline analyzers
    (topic selection, aggregation, classification, statistics),
    ensuring they are cleaned up properly.
    """
    resource_manager = ResourceManager()
    try:
        selector = TopicModelSelector(seed=seed, n_jobs=n_jobs, verbose=verbose)
        classifier = SentimentClassifier(seed=seed, n_jobs=n_jobs)

        resource_manager.register(selector)
        resource_manager.register(classifier)

        yield {
            'selector': selector,
            'aggregator': SentimentTopicAggregator(),
            'classifier': classifier,
            'statistics': StatisticalAnalyzer()
        }
    finally:
        resource_manager.cleanup()

def parse_arguments(argv: Optional[List[str]] = None):
    """
    Parse command line arguments for the topic and sentiment pipeline.

    Returns:
        An argparse.Namespace with the parsed arguments.
    """
    parser = argparse.ArgumentParser(description='Movie Review Topic & Sentiment Analysis')
    parser.add_argument('-i', '--input',
                        default=DEFAULT_INPUT_FILE,
                        help='CSV file with id, text, sentiment, split and rating columns')
    parser.add_argument('-k', '--candidates',
                        type=int, nargs='+',
                        default=TOPIC_CONFIG['candidate_topics'],
                        help='Candidate topic counts to evaluate')
    parser.add_argument('--seed',
                        type=int, default=RANDOM_SEED,
                        help='Seed for topic models, sampling and the classifier')
    parser.add_argument('-j', '--n-jobs',
                        type=int, default=N_JOBS,
                        help='Worker processes for candidate fits and the grid search')
    parser.add_argument('--column-map',
                        type=str,
                        help='JSON mapping of logical columns to file headers, e.g. \'{"text": "review"}\'')
    parser.add_argument('--labels',
                        type=str,
                        help='JSON file with human topic labels, e.g. {"0": "acting"}')
    parser.add_argument('--sample-size',
                        type=int,
                        help='Downsample the corpus (keeping sentiment ratios) before modeling')
    parser.add_argument('--no-below', type=int, default=NO_BELOW,
                        help='Drop terms found in fewer documents')
    parser.add_argument('--no-above', type=float, default=NO_ABOVE,
                        help='Drop terms found in a larger fraction of documents')
    parser.add_argument('--keep-n', type=int, default=KEEP_N,
                        help='Vocabulary size cap')
    parser.add_argument('--use-corpus-split',
                        action='store_true',
                        help="Evaluate on the corpus' own train/test tags instead of a stratified 80/20 split")
    parser.add_argument('--skip-classifier',
                        action='store_true',
                        help='Stop after topic aggregation')
    parser.add_argument('-o', '--output-dir',
                        default=REPORT_FOLDER,
                        help='Folder for CSV/JSON outputs and the PDF report')
    parser.add_argument('--no-report',
                        action='store_true',
                        help='Skip the PDF report')
    parser.add_argument('-v', '--verbose',
                        action='store_true',
                        help='Enable debug logging and progress bars')
    return parser.parse_args(argv)

def run_pipeline(args) -> Dict[str, Any]:
    """
    Run the full pipeline:
      1. Load reviews (skipping and counting malformed rows), optionally downsample.
      2. Build the document-term table.
      3. Fit every candidate topic count and select one.
      4. Aggregate topic proportions by sentiment and by rating; extract top terms.
      5. Train and evaluate the sentiment classifier on topic proportions.
    """
    column_map = json.loads(args.column_map) if args.column_map else None
    loaded = load_reviews(args.input, column_map=column_map)
    documents = loaded['documents']

    if args.sample_size:
        documents = reduce_corpus(documents, args.sample_size, args.seed)

    table = build_document_term_table(
        documents,
        no_below=args.no_below,
        no_above=args.no_above,
        keep_n=args.keep_n,
        verbose=args.verbose
    )

    topic_labels = load_topic_labels(args.labels) if args.labels else {}

    with managed_analyzers(seed=args.seed, n_jobs=args.n_jobs, verbose=args.verbose) as analyzers:
        selection = analyzers['selector'].run(table, args.candidates)
        chosen = selection.chosen
        aggregator = analyzers['aggregator']

        doc_topics = aggregator.document_topic_frame(chosen, table.doc_ids)
        sentiments = documents.set_index('id')['sentiment']
        by_sentiment = aggregator.aggregate_by_sentiment(doc_topics, sentiments)
        by_rating = aggregator.aggregate_by_rating(doc_topics, documents)
        top_terms = aggregator.top_terms(chosen)

        if topic_labels:
            top_terms = apply_topic_labels(top_terms, topic_labels, chosen.k)
            by_sentiment = apply_topic_labels(by_sentiment, topic_labels, chosen.k)

        statistics = analyzers['statistics']
        contrast = statistics.topic_contrast(by_sentiment)
        divergence = statistics.sentiment_divergence(by_sentiment)

        classifier_results = None
        if not args.skip_classifier:
            split_tags = (
                documents.set_index('id').loc[table.doc_ids, 'split'].tolist()
                if args.use_corpus_split else None
            )
            classifier_results = analyzers['classifier'].fit_evaluate(
                doc_topics.values,
                sentiments.loc[table.doc_ids].tolist(),
                table.doc_ids,
                split_tags=split_tags
            )

    return {
        'loaded': loaded,
        'documents': documents,
        'table': table,
        'selection': selection,
        'doc_topics': doc_topics,
        'by_sentiment': by_sentiment,
        'by_rating': by_rating,
        'top_terms': top_terms,
        'topic_contrast': contrast,
        'sentiment_divergence': divergence,
        'topic_diversity': statistics.topic_diversity(chosen.doc_topic),
        'topic_labels': topic_labels,
        'classifier': classifier_results
    }

def write_outputs(results: Dict[str, Any], output_dir: str) -> Dict[str, str]:
    """Write the result tables to CSV/JSON; returns {name: path}."""
    os.makedirs(output_dir, exist_ok=True)
    paths = {}

    tables = {
        'topic_selection': results['selection'].diagnostics,
        'topic_terms': results['top_terms'],
        'sentiment_topic_proportions': results['by_sentiment'],
        'rating_topic_proportions': results['by_rating'],
        'topic_contrast': results['topic_contrast'],
        'document_topics': results['doc_topics'].reset_index()
    }
    if results['classifier']:
        tables['classifier_predictions'] = results['classifier']['predictions']

    for name, frame in tables.items():
        path = os.path.join(output_dir, f"{name}.csv")
        frame.to_csv(path, index=False)
        paths[name] = path

    selection = results['selection']
    summary = {
        'chosen_k': selection.chosen_k,
        'votes': selection.votes,
        'failures': {str(k): reason for k, reason in selection.failures.items()},
        'rows_read': results['loaded']['rows_read'],
        'rows_skipped': results['loaded']['rows_skipped'],
        'skip_reasons': results['loaded']['skip_reasons'],
        'sentiment_divergence': results['sentiment_divergence'],
        'topic_diversity': results['topic_diversity']
    }
    if results['classifier']:
        summary['classifier'] = {
            **results['classifier']['metrics'],
            'best_params': results['classifier']['best_params'],
            'cv_score': results['classifier']['cv_score'],
            'feature_importances': results['classifier']['feature_importances']
        }

    path = os.path.join(output_dir, 'classifier_metrics.json' if results['classifier'] else 'summary.json')
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)
    paths['summary'] = path

    for name, written in paths.items():
        logging.info(f"Wrote {name}: {written}")
    return paths

def build_report(results: Dict[str, Any], output_dir: str) -> str:
    """Render the PDF report for a finished run."""
    from utils.report_generator import generate_pdf_report

    documents = results['documents']
    selection = results['selection']
    report_path = os.path.join(output_dir, 'topic_sentiment_report.pdf')

    generate_pdf_report(
        report_path,
        corpus_summary={
            'rows_read': results['loaded']['rows_read'],
            'rows_skipped': results['loaded']['rows_skipped'],
            'skip_reasons': results['loaded']['skip_reasons'],
            'documents': len(documents),
            'num_terms': results['table'].num_terms,
            'sentiment_distribution': documents['sentiment'].value_counts().to_dict()
        },
        selection={
            'diagnostics': selection.diagnostics,
            'chosen_k': selection.chosen_k,
            'votes': selection.votes,
            'failures': selection.failures,
            'coherence_measures': TOPIC_CONFIG['coherence_measures']
        },
        top_terms=results['top_terms'],
        aggregation=results['by_sentiment'],
        classifier_results=results['classifier'],
        topic_labels=results['topic_labels'],
        example_reviews=documents.head(5).to_dict('records')
    )
    return report_path

def main(argv: Optional[List[str]] = None):
    """
    Main entry point for the command-line usage.
    Performs:
      1. Argument parsing and logging setup
      2. Configuration validation (creating the standard folders for the default input)
      3. The pipeline run
      4. CSV/JSON outputs and the optional PDF report
    """
    args = parse_arguments(argv)
    os.makedirs(args.output_dir, exist_ok=True)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(os.path.join(args.output_dir, 'analysis.log'))
        ]
    )

    try:
        # The default input path lives under the standard data folders
        settings = get_config(create_folders=args.input == DEFAULT_INPUT_FILE)
        logging.debug(f"Configuration: {settings}")
        results = run_pipeline(args)
        write_outputs(results, args.output_dir)

        if not args.no_report:
            report_path = build_report(results, args.output_dir)
            logging.info(f"Report generated: {report_path}")

        logging.info(f"\nProcessing complete. Chosen k={results['selection'].chosen_k}.")

    except Exception as e:
        logging.error(f"Error in main execution: {str(e)}", exc_info=True)
        sys.exit(1)

if __name__ == "__main__":
    main()
