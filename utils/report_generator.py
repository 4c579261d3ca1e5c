from fpdf import FPDF
from fpdf.enums import XPos, YPos
from typing import Dict, List, Any, Optional
import logging

import pandas as pd

from config import PDF_FONT_SIZE, PDF_TITLE_SIZE, PDF_MARGIN, MAX_TEXT_LENGTH
from configs.models import ClassifierConfig
from utils.text_processing import strip_markup, sanitize_text, clean_text, truncate_text
from utils.visualization import VisualizationGenerator
from pathlib import Path
import tempfile
import shutil
from contextlib import contextmanager

@contextmanager
def managed_temp_directory():
    temp_dir = Path(tempfile.mkdtemp())
    try:
        yield temp_dir
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

def _pdf_text(text: str) -> str:
    """Core PDF fonts only cover Latin-1, so report text is reduced to ASCII."""
    return clean_text(sanitize_text(strip_markup(str(text))))

def generate_pdf_report(
    output_path: str,
    corpus_summary: Dict[str, Any],
    selection: Dict[str, Any],
    top_terms: pd.DataFrame,
    aggregation: pd.DataFrame,
    classifier_results: Optional[Dict[str, Any]] = None,
    topic_labels: Optional[Dict[int, str]] = None,
    example_reviews: Optional[List[Dict[str, Any]]] = None
) -> None:
    """
    Generate a PDF report of the topic and sentiment analysis.

    Args:
        output_path (str): Where to save the final PDF file.
        corpus_summary (dict): 'rows_read', 'rows_skipped', 'skip_reasons',
            'documents', 'num_terms', 'sentiment_distribution'.
        selection (dict): 'diagnostics' (DataFrame), 'chosen_k', 'votes',
            'failures', 'coherence_measures'.
        top_terms (DataFrame): Output of SentimentTopicAggregator.top_terms.
        aggregation (DataFrame): Mean topic proportion per sentiment.
        classifier_results (dict): Output of SentimentClassifier.fit_evaluate, if run.
        topic_labels (dict): Optional human labels per topic.
        example_reviews (list of dict): A few reviews ('id', 'text', 'sentiment') to quote.
    """
    topic_labels = topic_labels or {}

    with managed_temp_directory() as temp_dir:
        try:
            viz_gen = VisualizationGenerator(temp_dir)

            pdf = FPDF()
            pdf.set_margins(PDF_MARGIN, PDF_MARGIN)
            pdf.add_page()

            # Title
            pdf.set_font("helvetica", size=PDF_TITLE_SIZE, style='B')
            pdf.cell(0, 10, "Movie Review Topic & Sentiment Report", new_x=XPos.LMARGIN, new_y=YPos.NEXT, align='C')
            pdf.ln(10)

            # Column widths
            col_width = (pdf.w - 2 * PDF_MARGIN) / 2

            # Left column: Corpus Stats
            pdf.set_font("helvetica", size=PDF_FONT_SIZE, style='B')
            pdf.set_x(PDF_MARGIN)
            pdf.cell(col_width, 10, "Corpus", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.set_font("helvetica", size=10)

            stats = [
                ("Rows Read", corpus_summary.get('rows_read', 0)),
                ("Rows Skipped", corpus_summary.get('rows_skipped', 0)),
                ("Documents Used", corpus_summary.get('documents', 0)),
                ("Vocabulary Size", corpus_summary.get('num_terms', 0))
            ]
            for sentiment, count in sorted(corpus_summary.get('sentiment_distribution', {}).items()):
                stats.append((f"{sentiment.capitalize()} Reviews", count))
            for label, value in stats:
                pdf.set_x(PDF_MARGIN)
                pdf.cell(col_width, 8, f"{label}: {value}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

            # Right column: Model Metrics
            y_position = pdf.get_y()
            pdf.set_xy(PDF_MARGIN + col_width, y_position - (len(stats) * 8) - 10)
            pdf.set_font("helvetica", size=PDF_FONT_SIZE, style='B')
            pdf.cell(col_width, 10, "Model", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.set_font("helvetica", size=10)

            metrics = [("Chosen Topic Count", selection['chosen_k'])]
            if classifier_results:
                held_out = classifier_results['metrics']
                metrics.extend([
                    ("Held-out Accuracy", f"{held_out['accuracy']:.3f}"),
                    ("Held-out ROC-AUC", f"{held_out['roc_auc']:.3f}"),
                    ("Held-out Documents", held_out['n_test'])
                ])
            for label, value in metrics:
                pdf.set_x(PDF_MARGIN + col_width)
                pdf.cell(col_width, 8, f"{label}: {value}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.set_y(max(pdf.get_y(), y_position))

            if corpus_summary.get('skip_reasons'):
                pdf.ln(4)
                pdf.set_font("helvetica", size=9)
                reasons = ", ".join(f"{reason}={count}" for reason, count
                                    in sorted(corpus_summary['skip_reasons'].items()))
                pdf.multi_cell(0, 6, f"Skipped rows by reason: {reasons}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

            # Topic count selection
            pdf.add_page()
            pdf.set_font("helvetica", size=12, style='B')
            pdf.cell(0, 10, "Topic Count Selection", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.set_font("helvetica", size=9)

            diagnostics = selection['diagnostics']
            measures = selection.get('coherence_measures', [])
            for _, row in diagnostics.iterrows():
                scores = ", ".join(f"{m}={row[m]:.3f}" for m in measures if m in row)
                pdf.multi_cell(
                    0, 6,
                    f"k={int(row['k'])}: perplexity={row['perplexity']:.1f}, "
                    f"log-likelihood={row['log_likelihood']:.1f}, {scores}",
                    new_x=XPos.LMARGIN, new_y=YPos.NEXT
                )
            votes = ", ".join(f"{m} -> {k}" for m, k in selection.get('votes', {}).items())
            pdf.multi_cell(0, 6, f"Coherence votes: {votes}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            for k, reason in sorted(selection.get('failures', {}).items()):
                pdf.multi_cell(0, 6, _pdf_text(f"Excluded k={k}: {reason}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

            diag_path = viz_gen.generate_selection_diagnostics(
                diagnostics, measures, selection['chosen_k']
            )
            pdf.image(diag_path, x=15, w=180)

            # Topic terms for labeling
            pdf.add_page()
            pdf.set_font("helvetica", size=12, style='B')
            pdf.cell(0, 10, "Topic Terms", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            pdf.set_font("helvetica", size=10)

            for topic, group in top_terms.sort_values(['topic', 'rank']).groupby('topic'):
                name = topic_labels.get(int(topic), f"Topic {int(topic)}")
                pdf.multi_cell(0, 6, _pdf_text(f"{name}: {', '.join(group['term'])}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
                pdf.ln(1)

            terms_path = viz_gen.generate_top_terms_plot(top_terms)
            pdf.add_page()
            pdf.image(terms_path, x=10, w=190)

            # Sentiment aggregation
            pdf.add_page()
            pdf.set_font("helvetica", size=12, style='B')
            pdf.cell(0, 10, "Topics by Sentiment", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            sentiment_path = viz_gen.generate_sentiment_topic_plot(aggregation, topic_labels)
            pdf.image(sentiment_path, x=10, w=190)

            # Classifier
            if classifier_results:
                pdf.add_page()
                pdf.set_font("helvetica", size=12, style='B')
                pdf.cell(0, 10, "Sentiment Classifier", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
                pdf.set_font("helvetica", size=9)
                pdf.multi_cell(0, 6, f"Model: {ClassifierConfig.DESCRIPTION}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
                pdf.multi_cell(0, 6, f"Best parameters: {classifier_results['best_params']}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
                classifier_path = viz_gen.generate_classifier_plot(
                    classifier_results['predictions'], classifier_results['metrics']
                )
                pdf.image(classifier_path, x=10, w=190)

            # Example reviews
            if example_reviews:
                pdf.add_page()
                pdf.set_font("helvetica", size=12, style='B')
                pdf.cell(0, 10, "Example Reviews", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

                for i, review in enumerate(example_reviews[:5], 1):
                    pdf.set_font("helvetica", size=9, style='B')
                    pdf.cell(0, 6, _pdf_text(f"Review {review.get('id', i)} ({review.get('sentiment', 'N/A')}):"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
                    pdf.set_font("helvetica", size=9)
                    pdf.multi_cell(0, 6, truncate_text(_pdf_text(review.get('text', '')), MAX_TEXT_LENGTH), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
                    pdf.ln(2)

            # Finally, save the PDF
            pdf.output(output_path)
            logging.info(f"PDF report generated at: {output_path}")

        except Exception as e:
            logging.error(f"Error generating PDF: {str(e)}")
            raise
