import pytest

import config
from config import get_config, validate_config

def test_get_config_exposes_pipeline_settings():
    settings = get_config(create_folders=False)

    assert settings['required_columns'] == ['id', 'text', 'sentiment', 'split', 'rating']
    assert settings['valid_splits'] == ('train', 'test')
    assert 0 < settings['test_size'] < 1
    assert settings['cv_folds'] >= 2
    assert 'movie' in settings['domain_stop_words']

def test_get_config_returns_copies():
    settings = get_config(create_folders=False)
    settings['required_columns'].append('extra')

    assert 'extra' not in config.REQUIRED_COLUMNS

@pytest.mark.parametrize('name, value', [
    ('NO_ABOVE', 1.5),
    ('NO_BELOW', 0),
    ('TEST_SIZE', 1.0),
    ('CV_FOLDS', 1),
    ('N_JOBS', 0),
    ('MIN_RATING', 10),
])
def test_invalid_settings_rejected(monkeypatch, name, value):
    monkeypatch.setattr(config, name, value)

    with pytest.raises(ValueError):
        validate_config(create_folders=False)

def test_setup_folders_creates_both_folders(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)

    validate_config(create_folders=True)

    assert (tmp_path / config.INPUT_DATA_FOLDER).is_dir()
    assert (tmp_path / config.REPORT_FOLDER).is_dir()
