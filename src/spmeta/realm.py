"""
Locating the SAML realm to generate metadata for, and deriving the service provider configuration from it.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from spmeta.constants import NAMEID_FORMAT_TRANSIENT, SAML_REALM_TYPE, config
from spmeta.credentials import Credential, load_credential, resolve
from spmeta.exceptions import ConfigurationException
from spmeta.logs import get_log
from spmeta.settings import Settings
from spmeta.terminal import Terminal

log = get_log(__name__)

SP_ENTITY_ID = "sp.entity_id"
SP_ACS = "sp.acs"
SP_LOGOUT = "sp.logout"
NAMEID_FORMAT = "nameid_format"
ATTRIBUTES_PREFIX = "attributes."
SIGNING_MESSAGES = "signing.saml_messages"
SIGNING_PREFIX = "signing"
ENCRYPTION_PREFIX = "encryption"


class RealmConfig(object):
    def __init__(self, name: str, settings: Settings, global_settings: Settings, config_file: Optional[str] = None,
                 config_dir: Optional[str] = None):
        self.name = name
        self.settings = settings
        self.global_settings = global_settings
        self.config_file = config_file
        self.config_dir = config_dir

    @property
    def type(self) -> Optional[str]:
        return realm_type(self.settings)

    def full_key(self, key: str) -> str:
        return "{}.{}.{}".format(config.realms_prefix, self.name, key)

    def __str__(self):
        return "RealmConfig<{}>".format(self.name)


class SigningConfiguration(BaseModel):
    messages: List[str] = Field(['*'])
    credential: Optional[Credential] = None
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    def should_sign(self, message_type: str) -> bool:
        if self.credential is None:
            return False
        return '*' in self.messages or message_type in self.messages


class SpConfiguration(BaseModel):
    entity_id: str
    asc_url: str
    logout_url: Optional[str] = None
    signing: SigningConfiguration = Field(default_factory=SigningConfiguration)
    encryption_credential: Optional[Credential] = None
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


def realm_type(settings: Settings) -> Optional[str]:
    return settings.get('type')


def is_saml_realm(t: Optional[str]) -> bool:
    return t == SAML_REALM_TYPE


def realm_settings(settings: Settings) -> Dict[str, Settings]:
    return settings.get_groups(config.realms_prefix)


def find_realm(terminal: Terminal, settings: Settings, name: Optional[str] = None, config_file: Optional[str] = None,
               config_dir: Optional[str] = None) -> RealmConfig:
    """
    Find the realm called name, or the only SAML realm if no name is given.

    :raise ConfigurationException: if there is no such realm, it is not a SAML realm, there are no SAML realms or
        there are several and no name was given
    """
    realms = realm_settings(settings)
    if name is not None:
        rs = realms.get(name)
        if rs is None:
            raise ConfigurationException("No such realm '{}' defined in {}".format(name, config_file))
        t = realm_type(rs)
        if not is_saml_realm(t):
            raise ConfigurationException("Realm '{}' is not a SAML realm (is '{}')".format(name, t))
        return RealmConfig(name, rs, settings, config_file=config_file, config_dir=config_dir)

    saml = [n for n in sorted(realms.keys()) if is_saml_realm(realm_type(realms[n]))]
    if not saml:
        raise ConfigurationException("There is no SAML realm configured in {}".format(config_file))
    if len(saml) > 1:
        terminal.println("Using configuration in {}".format(config_file))
        terminal.println("Found multiple SAML realms: {}".format(", ".join(saml)))
        terminal.println("Use the --realm option to specify an explicit realm")
        raise ConfigurationException("Found multiple SAML realms, please specify one with '--realm'")
    name = saml[0]
    terminal.println("Building metadata for SAML realm {}".format(name))
    return RealmConfig(name, realms[name], settings, config_file=config_file, config_dir=config_dir)


def require(realm: RealmConfig, key: str) -> str:
    value = realm.settings.get(key)
    if not value:
        raise ConfigurationException("The configuration setting [{}] is required".format(realm.full_key(key)))
    return value


def attribute_settings(realm: RealmConfig) -> Dict[str, str]:
    """The attributes.* settings of the realm as a dict of setting name to attribute."""
    attrs = realm.settings.get_by_prefix(ATTRIBUTES_PREFIX)
    return {k: attrs.get(k) for k in attrs.keys()}


def credential(realm: RealmConfig, prefix: str) -> Optional[Credential]:
    cert = realm.settings.get("{}.certificate".format(prefix))
    key = realm.settings.get("{}.key".format(prefix))
    if cert is None and key is None:
        return None
    if cert is None:
        raise ConfigurationException(
            "The configuration setting [{}] is required when [{}] is set".format(
                realm.full_key("{}.certificate".format(prefix)), realm.full_key("{}.key".format(prefix))
            )
        )
    if key is None:
        raise ConfigurationException(
            "The configuration setting [{}] is required when [{}] is set".format(
                realm.full_key("{}.key".format(prefix)), realm.full_key("{}.certificate".format(prefix))
            )
        )
    passphrase = realm.settings.get("{}.key_passphrase".format(prefix))
    return load_credential(resolve(cert, realm.config_dir), resolve(key, realm.config_dir), passphrase)


def sp_configuration(realm: RealmConfig) -> SpConfiguration:
    signing = SigningConfiguration(
        messages=realm.settings.get_as_list(SIGNING_MESSAGES, ['*']), credential=credential(realm, SIGNING_PREFIX)
    )
    return SpConfiguration(
        entity_id=require(realm, SP_ENTITY_ID),
        asc_url=require(realm, SP_ACS),
        logout_url=realm.settings.get(SP_LOGOUT),
        signing=signing,
        encryption_credential=credential(realm, ENCRYPTION_PREFIX),
    )


def nameid_format(realm: RealmConfig) -> str:
    return realm.settings.get(NAMEID_FORMAT, NAMEID_FORMAT_TRANSIENT)
