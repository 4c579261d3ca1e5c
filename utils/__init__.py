from .text_processing import (
    strip_markup,
    sanitize_text,
    clean_text,
    truncate_text,
    preprocess_text
)
from .corpus import load_reviews, reduce_corpus, build_document_term_table, DocumentTermTable

__all__ = [
    'strip_markup',
    'sanitize_text',
    'clean_text',
    'truncate_text',
    'preprocess_text',
    'load_reviews',
    'reduce_corpus',
    'build_document_term_table',
    'DocumentTermTable'
]

# Note: report_generator and visualization are imported by clients directly
