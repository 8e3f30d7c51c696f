import logging
import os
from typing import Any, Optional, Union

from spmeta.exceptions import ConfigurationException


class SpmetaLogger(object):
    """Diagnostic logging for spmeta. Operator facing output goes through :py:class:`spmeta.terminal.Terminal`."""

    def __init__(self, name=None):
        if name is None:
            name = __name__
        self._log = logging.getLogger(name)
        self._loggers = {
            logging.WARNING: self._log.warning,
            logging.DEBUG: self._log.debug,
            logging.ERROR: self._log.error,
        }

    def _l(self, severity, msg):
        if severity in self._loggers:
            self._loggers[severity](str(msg))
        else:
            raise ValueError("unknown severity %s" % severity)

    def warning(self, msg: str) -> Any:
        return self._l(logging.WARNING, msg)

    def error(self, msg: str) -> Any:
        return self._l(logging.ERROR, msg)

    def debug(self, msg: str) -> Any:
        return self._l(logging.DEBUG, msg)

    def isEnabledFor(self, lvl: Any) -> bool:
        return self._log.isEnabledFor(lvl)


def get_log(name: str) -> SpmetaLogger:
    return SpmetaLogger(name)


log = get_log('spmeta')


def log_level(name: Union[str, int]) -> int:
    """
    Translate the value of --loglevel (a level name such as WARN or debug, or a number) into a logging level.

    :raise ConfigurationException: if name is not a known level
    """
    if isinstance(name, int):
        return name
    s = str(name).strip()
    if s.isdigit():
        return int(s)
    lvl = logging.getLevelName(s.upper())
    if not isinstance(lvl, int):
        raise ConfigurationException("Unknown log level '{}'".format(name))
    return lvl


def log_config_file(ini: Optional[str]) -> None:
    if ini is not None:
        import logging.config

        if not os.path.isabs(ini):
            ini = os.path.join(os.getcwd(), ini)
        if not os.path.exists(ini):
            raise ValueError("SPMETA_LOGGING={} does not exist".format(ini))
        logging.config.fileConfig(ini)


log_config_file(os.getenv('SPMETA_LOGGING'))
