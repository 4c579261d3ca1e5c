class CorpusLoadError(ValueError):
    """The review file cannot be read as a corpus (e.g. required columns missing)."""


class TopicFitError(ValueError):
    """A single candidate topic count cannot be fitted on the document-term table."""

    def __init__(self, k: int, reason: str):
        super().__init__(f"Cannot fit topic model with k={k}: {reason}")
        self.k = k
        self.reason = reason


class TopicSelectionError(ValueError):
    """No candidate topic count survived fitting, or the candidate set is invalid."""


class StratificationError(ValueError):
    """Sentiment labels are too imbalanced for a stratified held-out split."""


class TopicLabelError(ValueError):
    """Human topic labels do not match the chosen model's topics."""
