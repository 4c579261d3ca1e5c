from .topic import TopicModelSelector, fit_topic_candidate, select_topic_count
from .aggregation import SentimentTopicAggregator, apply_topic_labels, load_topic_labels
from .sentiment import SentimentClassifier
from .statistics import StatisticalAnalyzer

__all__ = [
    'TopicModelSelector',
    'fit_topic_candidate',
    'select_topic_count',
    'SentimentTopicAggregator',
    'apply_topic_labels',
    'load_topic_labels',
    'SentimentClassifier',
    'StatisticalAnalyzer'
]
