import logging
import math
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.ensemble import GradientBoostingClassifier
from sklearn.metrics import accuracy_score, confusion_matrix, roc_auc_score
from sklearn.model_selection import GridSearchCV, StratifiedKFold, train_test_split

from config import RANDOM_SEED, TEST_SIZE, CV_FOLDS, N_JOBS
from configs.models import ClassifierConfig, SentimentLabels
from .exceptions import StratificationError

class SentimentClassifier:
    """
    Predict review sentiment from topic proportions.

    Gradient-boosted trees are tuned by a grid search on the training split
    only; every reported metric comes from the held-out split, which is
    disjoint from training and stratified by sentiment.
    """

    def __init__(self, seed: int = RANDOM_SEED,
                 test_size: float = TEST_SIZE,
                 cv_folds: int = CV_FOLDS,
                 param_grid: Optional[Dict[str, list]] = None,
                 scoring: str = ClassifierConfig.SCORING,
                 n_jobs: int = N_JOBS):
        """
        Args:
            seed: Seed for the split, the cross-validation folds and the trees.
            test_size: Held-out fraction.
            cv_folds: Folds for the grid search (reduced when a class is small).
            param_grid: GradientBoostingClassifier grid; defaults to ClassifierConfig.PARAM_GRID.
            scoring: Grid search scoring.
            n_jobs: Parallel jobs for the grid search.
        """
        if not 0 < test_size < 1:
            raise ValueError("test_size must be between 0 and 1")
        self.seed = seed
        self.test_size = test_size
        self.cv_folds = cv_folds
        self.param_grid = param_grid or ClassifierConfig.PARAM_GRID
        self.scoring = scoring
        self.n_jobs = n_jobs

        self.model = None
        self.search = None

    @staticmethod
    def encode_labels(labels: Sequence[str]) -> np.ndarray:
        """Map sentiment labels to 0 (negative) / 1 (positive)."""
        encoded = []
        for label in labels:
            normalized = SentimentLabels.normalize(label)
            if normalized is None:
                raise ValueError(f"Unknown sentiment label: {label!r}")
            encoded.append(SentimentLabels.ENCODING[normalized])
        return np.asarray(encoded, dtype=int)

    def check_stratifiable(self, y: np.ndarray) -> None:
        """
        Fail fast when a stratified held-out split is impossible: fewer than
        two classes, a class with fewer than two members, or a held-out or
        training split too small to hold every class.

        Raises:
            StratificationError
        """
        classes, counts = np.unique(y, return_counts=True)
        if len(classes) < 2:
            raise StratificationError(
                f"Need both sentiment classes for a stratified split, found {classes.tolist()}"
            )
        if counts.min() < 2:
            raise StratificationError(
                f"Every sentiment class needs at least 2 documents, got counts {dict(zip(classes.tolist(), counts.tolist()))}"
            )

        n_test = math.ceil(self.test_size * len(y))
        n_train = len(y) - n_test
        if n_test < len(classes) or n_train < len(classes):
            raise StratificationError(
                f"{len(y)} documents cannot be split {n_train}/{n_test} with every class on both sides"
            )

    def _cv_splitter(self, y_train: np.ndarray) -> StratifiedKFold:
        smallest = int(np.bincount(y_train).min())
        n_splits = min(self.cv_folds, smallest)
        if n_splits < 2:
            raise StratificationError(
                f"Smallest training class has {smallest} documents; cross-validation needs 2"
            )
        if n_splits < self.cv_folds:
            logging.warning(f"Reducing cross-validation folds to {n_splits} for the smallest class")
        return StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=self.seed)

    def split(self, features: np.ndarray, y: np.ndarray, doc_ids: np.ndarray,
              split_tags: Optional[Sequence[str]] = None):
        """
        Stratified train/held-out split, or the corpus' own train/test tags
        when split_tags is given.

        Returns:
            (X_train, X_test, y_train, y_test, ids_train, ids_test)
        """
        if split_tags is None:
            self.check_stratifiable(y)
            parts = train_test_split(
                features, y, doc_ids,
                test_size=self.test_size,
                random_state=self.seed,
                stratify=y
            )
        else:
            tags = np.asarray([str(tag).strip().lower() for tag in split_tags])
            train_mask = tags == 'train'
            test_mask = tags == 'test'
            parts = [
                features[train_mask], features[test_mask],
                y[train_mask], y[test_mask],
                doc_ids[train_mask], doc_ids[test_mask]
            ]

        y_train, y_test = parts[2], parts[3]
        for name, part in (('training', y_train), ('held-out', y_test)):
            if len(np.unique(part)) < 2:
                raise StratificationError(f"The {name} split does not contain both sentiment classes")
        return parts

    def fit_evaluate(self, features, labels: Sequence[str], doc_ids: Sequence[str],
                     split_tags: Optional[Sequence[str]] = None) -> Dict[str, Any]:
        """
        Split, tune, fit and evaluate.

        Args:
            features: (num_docs, k) topic proportions, array or DataFrame.
            labels: Sentiment label per document.
            doc_ids: Document id per row.
            split_tags: Optional 'train'/'test' tag per document; when given
                it replaces the random stratified split.

        Returns:
            A dictionary containing:
              - 'model': the refitted best estimator
              - 'best_params': chosen hyperparameters
              - 'cv_score': best mean cross-validated score
              - 'predictions': DataFrame [id, probability, predicted, actual] for held-out documents
              - 'metrics': accuracy, roc_auc, confusion matrix counts, n_train, n_test
              - 'feature_importances': importance per topic
        """
        X = np.asarray(features, dtype=float)
        y = self.encode_labels(labels)
        ids = np.asarray(list(doc_ids), dtype=object)
        if not (len(X) == len(y) == len(ids)):
            raise ValueError("features, labels and doc_ids must have the same length")

        X_train, X_test, y_train, y_test, ids_train, ids_test = self.split(X, y, ids, split_tags)
        logging.info(f"Training on {len(y_train)} documents, holding out {len(y_test)}")

        self.search = GridSearchCV(
            GradientBoostingClassifier(random_state=self.seed),
            self.param_grid,
            scoring=self.scoring,
            cv=self._cv_splitter(y_train),
            n_jobs=self.n_jobs,
            refit=True
        )
        self.search.fit(X_train, y_train)
        self.model = self.search.best_estimator_
        logging.info(f"Best parameters: {self.search.best_params_} "
                     f"(cv {self.scoring}={self.search.best_score_:.4f})")

        probability = self.model.predict_proba(X_test)[:, 1]
        predicted = self.model.predict(X_test)

        metrics = self.evaluate(y_test, probability, predicted)
        metrics['n_train'] = int(len(y_train))

        decoding = SentimentLabels.decoding()
        predictions = pd.DataFrame({
            'id': ids_test,
            'probability': probability,
            'predicted': [decoding[int(code)] for code in predicted],
            'actual': [decoding[int(code)] for code in y_test]
        })

        return {
            'model': self.model,
            'best_params': dict(self.search.best_params_),
            'cv_score': float(self.search.best_score_),
            'predictions': predictions,
            'metrics': metrics,
            'feature_importances': self.model.feature_importances_.tolist()
        }

    @staticmethod
    def evaluate(y_true: np.ndarray, probability: np.ndarray, predicted: np.ndarray) -> Dict[str, Any]:
        """Accuracy, ROC-AUC and confusion matrix counts on one split."""
        tn, fp, fn, tp = confusion_matrix(y_true, predicted, labels=[0, 1]).ravel()
        metrics = {
            'accuracy': float(accuracy_score(y_true, predicted)),
            'roc_auc': float(roc_auc_score(y_true, probability)),
            'confusion_matrix': {'tn': int(tn), 'fp': int(fp), 'fn': int(fn), 'tp': int(tp)},
            'n_test': int(len(y_true))
        }
        logging.info(f"Held-out accuracy={metrics['accuracy']:.4f}, ROC-AUC={metrics['roc_auc']:.4f}")
        return metrics

    def cleanup(self):
        """Drop the fitted model and search state."""
        self.model = None
        self.search = None
