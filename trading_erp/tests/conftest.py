import os
import tempfile

# Keep settings.ini and log files out of the working tree
_config_dir = tempfile.mkdtemp(prefix='trading_erp_test_')
os.environ['TRADING_ERP_CONFIG_DIR'] = _config_dir

from trading_erp.config import config  # noqa: E402

config.set('LOGGING', 'directory', os.path.join(_config_dir, 'logs'))
config.set('LOGGING', 'console_output', 'False')
