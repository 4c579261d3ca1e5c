from utils.text_processing import (
    strip_markup,
    sanitize_text,
    clean_text,
    truncate_text,
    tokenize,
    remove_stop_words,
    get_stop_words,
    preprocess_text
)

def test_strip_markup_removes_tags_and_entities():
    text = "Great acting.<br /><br />Terrible &amp; slow <i>ending</i>"
    assert clean_text(strip_markup(text)) == "Great acting. Terrible & slow ending"

def test_strip_markup_keeps_text_around_stray_brackets():
    text = "Acting was 3<5 stars, plot superb, pacing >2 hours"
    assert strip_markup(text) == text
    assert preprocess_text(text) == ['acting', 'stars', 'plot', 'superb', 'pacing', 'hours']

def test_sanitize_text_drops_accents():
    assert sanitize_text("Amélie is a café classic") == "Amelie is a cafe classic"

def test_clean_text_collapses_whitespace():
    assert clean_text("  one\n\ttwo   three ") == "one two three"

def test_truncate_text_keeps_word_boundary():
    assert truncate_text("short", max_length=10) == "short"
    assert truncate_text("the plot was thin", max_length=10) == "the plot..."

def test_tokenize_lowercases_and_keeps_apostrophes():
    assert tokenize("Didn't LIKE it, 10/10!") == ["didn't", "like", "it"]

def test_remove_stop_words_uses_length_and_list():
    stop_words = {'the'}
    assert remove_stop_words(['the', 'plot', 'is', 'ok'], stop_words, min_length=3) == ['plot']

def test_stop_words_include_domain_terms():
    stop_words = get_stop_words(extra=['Spielberg'])
    assert {'the', 'movie', 'film', 'spielberg'} <= stop_words

def test_preprocess_text_full_pipeline():
    text = "This movie was <br />BRILLIANT, the acting superb and the plot gripping."
    assert preprocess_text(text) == ['brilliant', 'acting', 'superb', 'plot', 'gripping']

def test_preprocess_text_handles_empty_input():
    assert preprocess_text("") == []
    assert preprocess_text(None) == []
