import os
import logging
from typing import Dict, Any

# Folder Configuration
INPUT_DATA_FOLDER = "Input Data"
REPORT_FOLDER = "Report"

# Corpus Configuration
DEFAULT_INPUT_FILE = os.path.join(INPUT_DATA_FOLDER, "movie_reviews.csv")
REQUIRED_COLUMNS = ['id', 'text', 'sentiment', 'split', 'rating']
VALID_SPLITS = ('train', 'test')
MIN_RATING = 1  # Star ratings run from 1 to 10
MAX_RATING = 10

# Language Processing
MIN_TOKEN_LENGTH = 3  # Shorter tokens are dropped with the stop words
DOMAIN_STOP_WORDS = {
    'movie', 'movies', 'film', 'films', 'br', 'just', 'like', 'really',
    'watch', 'watching', 'did', 'does', 'don', 'doesn', 've', 'll'
}
MAX_TEXT_LENGTH = 1000  # Maximum length for text snippets in reports

# Dictionary Filtering (gensim filter_extremes)
NO_BELOW = 5  # Drop terms appearing in fewer documents
NO_ABOVE = 0.5  # Drop terms appearing in a larger fraction of documents
KEEP_N = 20000  # Vocabulary cap after filtering

# Reproducibility
RANDOM_SEED = 1234  # Threaded explicitly into every fit, never set globally

# Classifier Evaluation
TEST_SIZE = 0.2  # Held-out fraction, stratified by sentiment
CV_FOLDS = 5  # Folds for the hyperparameter search on the training split

# Resource Management
N_JOBS = 1  # Worker processes for candidate topic model fits

# Report Configuration
PDF_FONT_SIZE = 12  # Default font size for PDF reports
PDF_TITLE_SIZE = 16  # Font size for PDF titles
PDF_MARGIN = 15  # PDF margin in points

def setup_folders() -> None:
    """Create necessary folders if they don't exist"""
    folders = [INPUT_DATA_FOLDER, REPORT_FOLDER]
    for folder in folders:
        try:
            os.makedirs(folder, exist_ok=True)
            logging.info(f"Ensured folder exists: {folder}")
        except OSError as e:
            logging.error(f"Failed to create folder {folder}: {str(e)}")
            raise

def validate_corpus_settings() -> None:
    """Validate corpus and rating settings"""
    if MIN_RATING >= MAX_RATING:
        raise ValueError("MIN_RATING must be less than MAX_RATING")

    if len(set(REQUIRED_COLUMNS)) != len(REQUIRED_COLUMNS):
        raise ValueError("REQUIRED_COLUMNS must not contain duplicates")

def validate_dictionary_settings() -> None:
    """Validate gensim dictionary filtering settings"""
    if NO_BELOW < 1:
        raise ValueError("NO_BELOW must be at least 1")

    if not 0 < NO_ABOVE <= 1:
        raise ValueError("NO_ABOVE must be in (0, 1]")

    if KEEP_N <= 0:
        raise ValueError("KEEP_N must be positive")

    if MIN_TOKEN_LENGTH < 1:
        raise ValueError("MIN_TOKEN_LENGTH must be at least 1")

def validate_evaluation_settings() -> None:
    """Validate held-out split and search settings"""
    if not 0 < TEST_SIZE < 1:
        raise ValueError("TEST_SIZE must be between 0 and 1")

    if CV_FOLDS < 2:
        raise ValueError("CV_FOLDS must be at least 2")

def validate_resource_settings() -> None:
    """Validate resource management settings"""
    if N_JOBS <= 0:
        raise ValueError("N_JOBS must be positive")

    if MAX_TEXT_LENGTH <= 0:
        raise ValueError("MAX_TEXT_LENGTH must be positive")

def validate_config(create_folders: bool = True) -> None:
    """
    Validate all configuration settings.
    Raises ValueError if any validation fails.
    """
    try:
        if create_folders:
            setup_folders()
        validate_corpus_settings()
        validate_dictionary_settings()
        validate_evaluation_settings()
        validate_resource_settings()
        logging.info("Configuration validated successfully")
    except Exception as e:
        logging.error(f"Configuration validation failed: {str(e)}")
        raise

def get_config(create_folders: bool = True) -> Dict[str, Any]:
    """
    Get configuration as a dictionary.
    Validates configuration before returning.
    """
    validate_config(create_folders=create_folders)
    return {
        # Folders
        'input_data_folder': INPUT_DATA_FOLDER,
        'report_folder': REPORT_FOLDER,

        # Corpus
        'default_input_file': DEFAULT_INPUT_FILE,
        'required_columns': list(REQUIRED_COLUMNS),
        'valid_splits': VALID_SPLITS,
        'min_rating': MIN_RATING,
        'max_rating': MAX_RATING,

        # Language Processing
        'min_token_length': MIN_TOKEN_LENGTH,
        'domain_stop_words': set(DOMAIN_STOP_WORDS),
        'max_text_length': MAX_TEXT_LENGTH,

        # Dictionary Filtering
        'no_below': NO_BELOW,
        'no_above': NO_ABOVE,
        'keep_n': KEEP_N,

        # Reproducibility and Evaluation
        'random_seed': RANDOM_SEED,
        'test_size': TEST_SIZE,
        'cv_folds': CV_FOLDS,

        # Resource Management
        'n_jobs': N_JOBS,

        # Report Configuration
        'pdf_font_size': PDF_FONT_SIZE,
        'pdf_title_size': PDF_TITLE_SIZE,
        'pdf_margin': PDF_MARGIN
    }

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    validate_config()
