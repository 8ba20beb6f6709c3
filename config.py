import logging
import os
import sys
import tempfile

logger = logging.getLogger(__name__)

CONFIG_FILE = 'TBCONFIG'
ENV_PREFIX = 'TINYBASIC_'


def default_settings():
    return {
        'PIPE': os.path.join(tempfile.gettempdir(), 'tbDebuggerPipe'),
        # Runs on the debugger's own terminal; set it to e.g. "xterm -e ..." for a separate window.
        # The command must stay in the foreground while the viewer runs.
        'VIEWER': f'"{sys.executable}" -m debug_console',
        'CONNECT_TIMEOUT': '5',
        'PROMPT': '(APP)> ',
        'DEBUG_PROMPT': '(DEBUG)> ',
        'LOG_LEVEL': 'WARNING',
    }


def read_config_file(path):
    """Reads KEY=VALUE lines; blank lines and # comments are ignored."""
    settings = {}
    with open(path, 'r') as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' in line:
                key, val = line.split('=', 1)
                settings[key.strip().upper()] = val.strip()
            else:
                logger.warning("Ignoring malformed line in %s: %s", path, line)
    return settings


def load_settings(path=CONFIG_FILE, environ=None):
    """
    Built-in defaults, overlaid by the config file, overlaid by TINYBASIC_*
    environment variables.
    """
    environ = os.environ if environ is None else environ
    settings = default_settings()

    if path and os.path.exists(path):
        try:
            settings.update(read_config_file(path))
        except OSError as e:
            logger.warning("Error loading %s: %s", path, e)

    for key, val in environ.items():
        if key.startswith(ENV_PREFIX):
            settings[key[len(ENV_PREFIX):].upper()] = val

    try:
        settings['CONNECT_TIMEOUT'] = float(settings['CONNECT_TIMEOUT'])
    except ValueError:
        logger.warning("Invalid CONNECT_TIMEOUT %r, using 5 seconds", settings['CONNECT_TIMEOUT'])
        settings['CONNECT_TIMEOUT'] = 5.0
    settings['LOG_LEVEL'] = settings['LOG_LEVEL'].upper()
    return settings
