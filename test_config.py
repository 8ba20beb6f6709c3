from config import load_settings, read_config_file, default_settings


def test_defaults_without_file():
    settings = load_settings(path=None, environ={})
    assert settings['PROMPT'] == '(APP)> '
    assert settings['DEBUG_PROMPT'] == '(DEBUG)> '
    assert settings['CONNECT_TIMEOUT'] == 5.0
    assert settings['PIPE'] == default_settings()['PIPE']


def test_missing_file_is_ignored(tmp_path):
    settings = load_settings(path=str(tmp_path / "TBCONFIG"), environ={})
    assert settings['LOG_LEVEL'] == 'WARNING'


def test_config_file(tmp_path):
    path = tmp_path / "TBCONFIG"
    path.write_text("# debugger settings\n\npipe = /tmp/other\nCONNECT_TIMEOUT=2.5\nlog_level=debug\nnot a setting\n")
    assert read_config_file(str(path)) == {
        'PIPE': '/tmp/other',
        'CONNECT_TIMEOUT': '2.5',
        'LOG_LEVEL': 'debug',
    }

    settings = load_settings(path=str(path), environ={})
    assert settings['PIPE'] == '/tmp/other'
    assert settings['CONNECT_TIMEOUT'] == 2.5
    assert settings['LOG_LEVEL'] == 'DEBUG'


def test_environment_wins_over_file(tmp_path):
    path = tmp_path / "TBCONFIG"
    path.write_text("PIPE=/tmp/from-file\n")
    environ = {'TINYBASIC_PIPE': '/tmp/from-env', 'TINYBASIC_prompt': '> ', 'HOME': '/root'}
    settings = load_settings(path=str(path), environ=environ)
    assert settings['PIPE'] == '/tmp/from-env'
    assert settings['PROMPT'] == '> '
    assert 'HOME' not in settings


def test_bad_timeout_falls_back():
    settings = load_settings(path=None, environ={'TINYBASIC_CONNECT_TIMEOUT': 'soon'})
    assert settings['CONNECT_TIMEOUT'] == 5.0
