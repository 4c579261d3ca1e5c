import matplotlib.pyplot as plt
import seaborn as sns
import numpy as np
import pandas as pd
from typing import Dict, List, Optional
from pathlib import Path
from sklearn.metrics import roc_curve

class VisualizationGenerator:
    def __init__(self, temp_dir: Path):
        self.temp_dir = Path(temp_dir)
        # Set matplotlib to use Agg backend for better memory management
        plt.switch_backend('Agg')

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        plt.close('all')  # Ensure all figures are closed

    def generate_selection_diagnostics(self, diagnostics: pd.DataFrame, measures: List[str],
                                       chosen_k: Optional[int] = None) -> str:
        """Plots every diagnostic against k, each min-max scaled so they share one axis"""
        output_path = self.temp_dir / "topic_selection.png"

        try:
            plt.close('all')

            fig, ax = plt.subplots(figsize=(10, 6))
            ordered = diagnostics.sort_values('k')
            for column in ['perplexity', 'log_likelihood'] + list(measures):
                values = ordered[column].astype(float)
                spread = values.max() - values.min()
                scaled = (values - values.min()) / spread if spread > 0 else values * 0.0
                style = '--' if column in ('perplexity', 'log_likelihood') else '-'
                ax.plot(ordered['k'], scaled, style, marker='o', label=column)

            if chosen_k is not None:
                ax.axvline(chosen_k, color='#555555', linestyle=':', label=f'chosen k={chosen_k}')

            ax.set_xticks(ordered['k'].tolist())
            ax.set_title('Topic Count Diagnostics (min-max scaled)')
            ax.set_xlabel('Number of topics (k)')
            ax.set_ylabel('Scaled score')
            ax.legend()

            plt.tight_layout()
            plt.savefig(output_path, dpi=300, bbox_inches='tight')
            return str(output_path)

        finally:
            plt.close('all')

    def generate_sentiment_topic_plot(self, aggregation: pd.DataFrame,
                                      labels: Optional[Dict[int, str]] = None) -> str:
        """Side-by-side bars of mean topic proportion for each sentiment"""
        output_path = self.temp_dir / "sentiment_topics.png"

        try:
            plt.close('all')

            plot_data = aggregation.copy()
            labels = labels or {}
            plot_data['topic_name'] = [
                labels.get(int(topic), f"Topic {int(topic)}") for topic in plot_data['topic']
            ]

            fig, ax = plt.subplots(figsize=(12, 6))
            sns.barplot(
                data=plot_data, x='topic_name', y='mean_proportion', hue='sentiment',
                palette={'positive': '#6cba6b', 'negative': '#f16a6a'}, ax=ax
            )
            ax.set_title('Mean Topic Proportion by Sentiment')
            ax.set_xlabel('Topic')
            ax.set_ylabel('Mean proportion')
            plt.setp(ax.get_xticklabels(), rotation=45, ha='right')

            plt.tight_layout()
            plt.savefig(output_path, dpi=300, bbox_inches='tight')
            return str(output_path)

        finally:
            plt.close('all')

    def generate_top_terms_plot(self, top_terms: pd.DataFrame, max_columns: int = 5) -> str:
        """Grid of horizontal bar charts, one per topic, with its top terms"""
        output_path = self.temp_dir / "topic_terms.png"

        try:
            plt.close('all')

            topics = sorted(top_terms['topic'].unique())
            n_cols = min(max_columns, len(topics))
            n_rows = int(np.ceil(len(topics) / n_cols))
            fig, axes = plt.subplots(n_rows, n_cols, figsize=(4 * n_cols, 3.5 * n_rows), squeeze=False)

            for ax, topic in zip(axes.flat, topics):
                terms = top_terms[top_terms['topic'] == topic].sort_values('rank', ascending=False)
                ax.barh(terms['term'], terms['probability'], color='#4a90e2')
                ax.set_title(f'Topic {topic}')
                ax.tick_params(axis='y', labelsize=8)

            # Hide unused grid cells
            for ax in list(axes.flat)[len(topics):]:
                ax.axis('off')

            plt.tight_layout()
            plt.savefig(output_path, dpi=300, bbox_inches='tight')
            return str(output_path)

        finally:
            plt.close('all')

    def generate_classifier_plot(self, predictions: pd.DataFrame, metrics: Dict) -> str:
        """Confusion matrix heatmap next to the held-out ROC curve"""
        output_path = self.temp_dir / "classifier.png"

        try:
            plt.close('all')

            fig, ax = plt.subplots(1, 2, figsize=(14, 6))

            counts = metrics['confusion_matrix']
            matrix = np.array([[counts['tn'], counts['fp']], [counts['fn'], counts['tp']]])
            sns.heatmap(
                matrix, annot=True, fmt='d', cmap='Blues', cbar=False, ax=ax[0],
                xticklabels=['negative', 'positive'], yticklabels=['negative', 'positive']
            )
            ax[0].set_title(f"Confusion Matrix (accuracy {metrics['accuracy']:.3f})")
            ax[0].set_xlabel('Predicted')
            ax[0].set_ylabel('Actual')

            actual = (predictions['actual'] == 'positive').astype(int)
            fpr, tpr, _ = roc_curve(actual, predictions['probability'])
            ax[1].plot(fpr, tpr, color='#f79c42', label=f"ROC (AUC = {metrics['roc_auc']:.3f})")
            ax[1].plot([0, 1], [0, 1], linestyle='--', color='#d1d1d1')
            ax[1].set_title('Held-out ROC Curve')
            ax[1].set_xlabel('False positive rate')
            ax[1].set_ylabel('True positive rate')
            ax[1].legend()

            plt.tight_layout()
            plt.savefig(output_path, dpi=300, bbox_inches='tight')
            return str(output_path)

        finally:
            plt.close('all')
