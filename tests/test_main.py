"""
Test cases for the console application
"""

import os
import sys

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from faceauth.authenticator import FaceAuthenticator
from faceauth.capture import BoundingBox
from faceauth.main import FaceAuthApp, annotate_match, get_default_config, load_config
from faceauth.local_storage import MemoryStorage
from fakes import ScriptedExtractor, one_hot


@pytest.fixture
def config():
    config = get_default_config()
    config['storage']['backend'] = 'memory'
    config['ui']['show_window'] = False
    return config


@pytest.fixture
def extractor():
    return ScriptedExtractor()


@pytest.fixture
def app(config, extractor):
    authenticator = FaceAuthenticator(config, extractor, storage=MemoryStorage(),
                                      sleep=lambda _: None)
    return FaceAuthApp(config, authenticator=authenticator)


class TestLoadConfig:

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(str(tmp_path / 'missing.yaml'))
        assert config == get_default_config()

    def test_partial_file_merges_with_defaults(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("recognition:\n  distance_threshold: 0.5\nenrollment:\n  sample_count: 5\n")

        config = load_config(str(path))

        assert config['recognition']['distance_threshold'] == 0.5
        assert config['enrollment']['sample_count'] == 5
        assert config['enrollment']['tick_count'] == 3
        assert config['storage']['key'] == 'faceAuthUsers'

    def test_shipped_config_matches_defaults(self):
        path = os.path.join(os.path.dirname(__file__), '..', 'config', 'config.yaml')
        assert load_config(path) == get_default_config()


def test_annotate_match_draws_on_copy():
    frame = np.zeros((240, 320, 3), dtype=np.uint8)
    annotated = annotate_match(frame, BoundingBox(100, 80, 60, 60), 'alice')

    assert annotated.shape == frame.shape
    assert annotated.any()
    assert not frame.any()


class TestFaceAuthApp:

    def test_register_prints_transitions(self, app, extractor, monkeypatch, capsys):
        monkeypatch.setattr('builtins.input', lambda prompt='': 'alice')
        extractor.push(one_hot(0), one_hot(1), one_hot(2))

        assert app.handle_command('r')

        out = capsys.readouterr().out
        assert 'Capturing sample 1/3 in 3...' in out
        assert 'Registered alice (samples: 3)' in out

    def test_authenticate_and_list(self, app, extractor, capsys):
        extractor.push(one_hot(0), one_hot(1), one_hot(2))
        app.register('alice')

        extractor.push(one_hot(2))
        result = app.authenticate()
        assert result.authenticated

        app.handle_command('l')
        out = capsys.readouterr().out
        assert 'Authenticated: alice (dist 0.00)' in out
        assert 'Registered users (1):' in out

    def test_clear_and_quit(self, app, capsys):
        assert app.handle_command('c')
        assert 'Cleared users' in capsys.readouterr().out
        assert app.handle_command('q') is False

    def test_interactive_loop_survives_errors(self, app, extractor, monkeypatch, capsys):
        extractor.push(one_hot(0), one_hot(1), one_hot(2), np.zeros(64))
        commands = iter(['r', 'alice', 'a', 'x', 'q'])
        monkeypatch.setattr('builtins.input', lambda prompt='': next(commands))

        app.run_interactive_mode()

        out = capsys.readouterr().out
        assert 'Command error: Embedding dimension mismatch' in out
        assert 'Unknown command: x' in out
        assert extractor.released
        assert not app.is_running
