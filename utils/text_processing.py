import unicodedata
import re
from typing import Iterable, List, Optional, Set

from bs4 import BeautifulSoup
from nltk.tokenize import RegexpTokenizer
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

from config import DOMAIN_STOP_WORDS, MIN_TOKEN_LENGTH

_TOKENIZER = RegexpTokenizer(r"[a-z]+(?:'[a-z]+)?")

def strip_markup(text: str) -> str:
    """
    Remove HTML tags (e.g. the ``<br />`` line breaks common in scraped
    reviews) and decode HTML entities.

    Args:
        text (str): Raw review text

    Returns:
        str: The text content, with a space where tags were
    """
    return BeautifulSoup(text, 'html.parser').get_text(' ')

def sanitize_text(text: str) -> str:
    """
    Sanitize text by removing non-ASCII characters and normalizing Unicode.

    Args:
        text (str): Input text to sanitize

    Returns:
        str: Sanitized text
    """
    # Normalize Unicode characters
    normalized = unicodedata.normalize('NFKD', text)
    # Convert to ASCII, removing non-ASCII characters
    ascii_text = normalized.encode('ascii', 'ignore').decode('ascii')
    return ascii_text

def clean_text(text: str) -> str:
    """
    Clean text by removing extra whitespace.

    Args:
        text (str): Input text to clean

    Returns:
        str: Cleaned text
    """
    # Replace runs of whitespace (including line breaks) with a single space
    text = re.sub(r'\s+', ' ', text)
    return text.strip()

def truncate_text(text: str, max_length: int = 100, ellipsis: str = '...') -> str:
    """
    Truncate text to specified length while preserving word boundaries.

    Args:
        text (str): Input text to truncate
        max_length (int): Maximum length of output text
        ellipsis (str): String to append to truncated text

    Returns:
        str: Truncated text
    """
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    # Find last space to preserve word boundary
    last_space = truncated.rfind(' ')
    if last_space > 0:
        truncated = truncated[:last_space]
    return truncated + ellipsis

def get_stop_words(extra: Optional[Iterable[str]] = None) -> Set[str]:
    """English stop words from scikit-learn plus the review-domain list."""
    stop_words = set(ENGLISH_STOP_WORDS) | set(DOMAIN_STOP_WORDS)
    if extra:
        stop_words.update(word.lower() for word in extra)
    return stop_words

def tokenize(text: str) -> List[str]:
    """Lowercase and split into alphabetic tokens (keeping inner apostrophes)."""
    return _TOKENIZER.tokenize(text.lower())

def remove_stop_words(tokens: List[str], stop_words: Set[str],
                      min_length: int = MIN_TOKEN_LENGTH) -> List[str]:
    """Drop stop words and tokens shorter than min_length."""
    return [
        token for token in tokens
        if len(token) >= min_length and token not in stop_words
    ]

def preprocess_text(text: str, stop_words: Optional[Set[str]] = None,
                    min_length: int = MIN_TOKEN_LENGTH) -> List[str]:
    """
    Full review preprocessing: markup stripping, ASCII normalization,
    whitespace cleanup, tokenization and stop word removal.

    Args:
        text (str): Raw review text
        stop_words (set): Words to drop; defaults to get_stop_words()
        min_length (int): Minimum token length

    Returns:
        list: Tokens in document order
    """
    if not text or not isinstance(text, str):
        return []

    if stop_words is None:
        stop_words = get_stop_words()

    cleaned = clean_text(sanitize_text(strip_markup(text)))
    return remove_stop_words(tokenize(cleaned), stop_words, min_length)
