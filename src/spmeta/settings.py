"""
The settings store: a read-only, flat view of an elasticsearch.yml style YAML file.

Nested mappings are flattened into dotted keys so that

.. code-block:: yaml

    xpack.security.authc.realms:
      saml1:
        type: saml
        sp.entity_id: https://kibana.example.com/

is seen as ``xpack.security.authc.realms.saml1.type`` and
``xpack.security.authc.realms.saml1.sp.entity_id``. Scalars are kept as strings, sequences as lists of strings.
"""

import os
from typing import Any, Dict, Iterable, List, Optional

import yaml

from spmeta.exceptions import ConfigurationException
from spmeta.logs import get_log

log = get_log(__name__)


def _as_value(v: Any) -> Any:
    if isinstance(v, bool):
        return 'true' if v else 'false'
    if isinstance(v, (list, tuple)):
        return [_as_value(x) for x in v]
    return str(v)


def flatten(d: Dict[str, Any], prefix: str = '') -> Dict[str, Any]:
    res = {}
    for k, v in d.items():
        key = "{}{}".format(prefix, k)
        if isinstance(v, dict):
            res.update(flatten(v, prefix="{}.".format(key)))
        elif v is not None:
            res[key] = _as_value(v)
    return res


class Settings(object):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._d = flatten(initial or {})

    @classmethod
    def from_yaml(cls, stream) -> 'Settings':
        try:
            data = yaml.safe_load(stream)
        except yaml.YAMLError as ex:
            raise ConfigurationException("Unable to parse settings: {}".format(ex), wrapped=ex)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationException("Settings must be a mapping, not {}".format(type(data).__name__))
        return cls(data)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        v = self._d.get(key, default)
        if isinstance(v, list):
            return ",".join(v)
        return v

    def get_as_list(self, key: str, default: Optional[List[str]] = None) -> List[str]:
        v = self._d.get(key)
        if v is None:
            return list(default or [])
        if isinstance(v, list):
            return list(v)
        return [x.strip() for x in v.split(',') if x.strip()]

    def keys(self) -> Iterable[str]:
        return self._d.keys()

    def __contains__(self, key):
        return key in self._d

    def __len__(self):
        return len(self._d)

    def get_by_prefix(self, prefix: str) -> 'Settings':
        """Return the settings starting with prefix, with the prefix removed from the keys."""
        s = Settings()
        s._d = {k[len(prefix):]: v for k, v in self._d.items() if k.startswith(prefix) and len(k) > len(prefix)}
        return s

    def get_groups(self, prefix: str) -> Dict[str, 'Settings']:
        """Group the settings under prefix.<name>.* by name."""
        if not prefix.endswith('.'):
            prefix += '.'
        groups = dict()
        for k in self._d.keys():
            if k.startswith(prefix):
                (name, dot, rest) = k[len(prefix):].partition('.')
                if name and rest and name not in groups:
                    groups[name] = self.get_by_prefix("{}{}.".format(prefix, name))
        return groups

    def with_overrides(self, overrides: Optional[Dict[str, str]]) -> 'Settings':
        s = Settings()
        s._d = dict(self._d)
        if overrides:
            s._d.update(flatten(overrides))
        return s

    def to_delimited_string(self, delimiter: str) -> str:
        return "".join("{}={}{}".format(k, self.get(k), delimiter) for k in sorted(self._d.keys()))

    def __str__(self):
        return self.to_delimited_string(',')


def load_settings(path_conf: str, settings_file: str, overrides: Optional[Dict[str, str]] = None):
    """
    Load the settings store from path_conf/settings_file and apply overrides. A missing file is treated
    as an empty store.

    :return: a tuple of the :py:class:`Settings` and the path of the settings file
    """
    fn = os.path.join(os.path.expanduser(path_conf), settings_file)
    if os.path.exists(fn):
        log.debug("loading settings from {}".format(fn))
        try:
            with open(fn, encoding='utf-8') as fd:
                settings = Settings.from_yaml(fd)
        except (OSError, UnicodeDecodeError) as ex:
            raise ConfigurationException("Unable to read settings from {}: {}".format(fn, ex), wrapped=ex)
    else:
        log.warning("settings file {} does not exist".format(fn))
        settings = Settings()
    return settings.with_overrides(overrides), fn
