"""
spmeta generates SAML Service Provider metadata for a configured realm.
"""

from importlib.metadata import PackageNotFoundError, version

__copyright__ = "Copyright 2018 the spmeta authors"
__license__ = "BSD"
__status__ = "Production"

try:
    __version__ = version("spmeta")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
