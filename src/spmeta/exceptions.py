#: Process exit codes, cf sysexits.h
EX_OK = 0
EX_USAGE = 64
EX_CODE_ERROR = 70
EX_IOERR = 74
EX_CONFIG = 78


class SpmetaException(Exception):
    exit_code = EX_CODE_ERROR

    def __init__(self, msg, wrapped=None, exit_code=None):
        self._wrapped = wrapped
        if exit_code is not None:
            self.exit_code = exit_code
        super().__init__(msg)

    def raise_wrapped(self):
        raise self._wrapped


class UsageException(SpmetaException):
    exit_code = EX_USAGE


class ConfigurationException(SpmetaException):
    exit_code = EX_CONFIG


class InputException(SpmetaException):
    exit_code = EX_IOERR


class SchemaValidationException(SpmetaException):
    exit_code = EX_CODE_ERROR
