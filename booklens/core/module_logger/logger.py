import logging

from booklens.core.utils import Utils
from pathlib             import Path

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

def resolve_logs_dir(configured_dir: str | None = None) -> Path:
    """
    Picks the directory log files are written to.

    An explicit `logging.dir` from the config wins. Otherwise logs live beside the
    package in a source checkout, or under the working directory when running
    from an installed distribution.
    """
    if configured_dir:
        return Path(configured_dir).expanduser()
    try:
        root = Utils.find_root('pyproject.toml')
    except FileNotFoundError:
        root = Path.cwd()
    return root / 'booklens' / 'logs'

class ModuleLogger:
    """
    Per-module file logging for BookLens.

    Each module gets a `booklens.<name>` logger writing to its own `<name>.log`.
    Level and directory come from the `logging` section of ocr.yml.
    """
    SETTINGS = Utils.load_config().logging
    LOGS_DIR = resolve_logs_dir(SETTINGS.dir)

    def __init__(self, module_name: str):
        """
        Args:
            module_name : Name of the module requesting the logger
        """
        self.logger   = logging.getLogger(f'booklens.{module_name}')
        self.log_file = self.LOGS_DIR / f'{module_name}.log'

        self.configure_logger()

    def configure_logger(self):
        """
        Attaches the file handler once per logger name.
        """
        if self.logger.handlers:
            return

        self.logger.setLevel(logging.getLevelName(str(self.SETTINGS.level).upper()))
        self.LOGS_DIR.mkdir(parents = True, exist_ok = True)

        handler = logging.FileHandler(self.log_file, mode = 'a', encoding = 'utf-8')
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

        self.logger.addHandler(handler)
        self.logger.propagate = False

    def __call__(self) -> logging.Logger:
        return self.logger
