"""
Useful constants for spmeta. Mostly XML namespace and SAML URI declarations, and the
command line configuration.
"""

import getopt
import json
import os
import re
import sys

import pyconfig
from str2bool import str2bool

from spmeta import __version__ as spmeta_version
from spmeta.exceptions import EX_OK, EX_USAGE, ConfigurationException, UsageException

#: The nameFormat used for every requested attribute
NF_URI = "urn:oasis:names:tc:SAML:2.0:attrname-format:uri"

#: These are the namespace prefixes spmeta knows about.
NS = dict(
    md="urn:oasis:names:tc:SAML:2.0:metadata",
    ds='http://www.w3.org/2000/09/xmldsig#',
    xenc='http://www.w3.org/2001/04/xmlenc#',
    saml="urn:oasis:names:tc:SAML:2.0:assertion",
    xml='http://www.w3.org/XML/1998/namespace',
    xs="http://www.w3.org/2001/XMLSchema",
    xsi="http://www.w3.org/2001/XMLSchema-instance",
)

SAML20P_NS = "urn:oasis:names:tc:SAML:2.0:protocol"
BINDING_HTTP_POST = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-POST"
BINDING_HTTP_REDIRECT = "urn:oasis:names:tc:SAML:2.0:bindings:HTTP-Redirect"
NAMEID_FORMAT_TRANSIENT = "urn:oasis:names:tc:SAML:2.0:nameid-format:transient"

#: The schema (in spmeta/schema) that generated metadata must conform to
METADATA_SCHEMA = "saml-schema-metadata-2.0.xsd"

DEFAULT_OUTPUT = "saml-elasticsearch-metadata.xml"
DEFAULT_SERVICE_NAME = "elasticsearch"
DEFAULT_LANG = "en"

SAML_REALM_TYPE = "saml"


def as_string(o):
    if not isinstance(o, str):
        o = str(o)
    return o


def as_list_of_string(o):
    if isinstance(o, str):
        o = re.findall(r'[^,\s]+', o)
    return list(o)


def as_dict_of_string(o):
    if isinstance(o, str):
        o = json.loads(o)
    return dict(o)


def as_bool(o):
    if not isinstance(o, bool):
        o = bool(str2bool(str(o)))
    return o


class BaseSetting(object):
    def __init__(
        self,
        name,
        default=None,
        cmdline=['spmeta'],
        typeconv=as_string,
        info='',
        long=None,
        short=None,
        hidden=False,
    ):
        self.name = name
        self.default = default
        self.cmdline = cmdline
        self.info = info
        self.short = short
        self.typeconv = typeconv
        self.value = None
        self.long = long
        self.hidden = hidden
        self.fallback = pyconfig.setting('spmeta.{}'.format(self.name), default, allow_default=True)

    @property
    def default_fmt(self):
        if self.default:
            return "[{}]".format(str(self.default))
        else:
            return ''

    @property
    def short_name(self):
        return self.short

    @property
    def long_name(self):
        if self.long is not None:
            return self.long
        else:
            return self.name

    @property
    def is_flag(self):
        return self.typeconv == as_bool

    def __lt__(self, other):
        return self.name.__lt__(other.name)

    def __gt__(self, other):
        return self.name.__gt__(other.name)

    def __get__(self, instance, owner):
        v = self.value
        if v is None:
            v = os.environ.get(
                "SPMETA_{}".format(self.name.upper().replace('.', '_').replace('-', '_')),
                self.fallback.__get__(instance, owner),
            )
        if v is not None:
            v = self.typeconv(v)

        return v

    def __set__(self, instance, value):
        self.value = value

    def short_spec(self):
        if self.short:
            if self.is_flag:
                return self.short
            else:
                return '{}:'.format(self.short)
        else:
            return ''

    def long_spec(self):
        if self.is_flag:
            return '{}'.format(self.long_name)
        else:
            return '{}='.format(self.long_name)


class EnvSetting(BaseSetting):
    pass


class DummySetting(BaseSetting):
    """A command line switch that is handled by :py:func:`parse_options` and never stored."""

    def __get__(self, instance, owner):
        pass

    def __set__(self, instance, value):
        pass


def S(*args: object, **kwargs: object) -> BaseSetting:
    return EnvSetting(*args, **kwargs)


class Config(object):
    """
    The :py:const:`spmeta.constants:config` object is a singleton instance of this Class and contains all
    configuration parameters available to spmeta. Each parameter can be set on the command line, via
    :py:mod:`pyconfig` (as spmeta.<name>) or via environment variables by prefixing the setting name in
    upper case with "SPMETA_". The setting called "loglevel" then becomes "SPMETA_LOGLEVEL" etc. Any
    occurrence of '.' or '-' is also transcribed to '_' when the setting is referenced as an environment
    variable.
    """

    info = DummySetting("help", info="Show this message", short='h', typeconv=as_bool)
    version = DummySetting('version', info="Show spmeta version information", typeconv=as_bool)
    attribute = DummySetting(
        "attribute", info="additional SAML attributes to request (may be repeated)"
    )
    setting = DummySetting(
        "setting", short='E', info="override a setting from the settings file (key=value, may be repeated)"
    )

    loglevel = S("loglevel", default='WARN', info="set the loglevel")

    logfile = S("log", short='l', info="a log target (file)")

    verbose = S("verbose", default=False, typeconv=as_bool, short='v', info="show verbose output")

    silent = S("silent", default=False, typeconv=as_bool, short='s', info="show minimal output")

    path_conf = S("path_conf", default="config", info="the directory holding the settings file")

    settings_file = S(
        "settings_file", default="elasticsearch.yml", info="the name of the settings file (yaml) in path_conf"
    )

    realms_prefix = S(
        "realms_prefix",
        default="xpack.security.authc.realms",
        hidden=True,
        info="the settings prefix under which realms are configured",
    )

    out = S("out", default=DEFAULT_OUTPUT, info="path of the xml file that should be generated")

    batch = S("batch", default=False, typeconv=as_bool, info="do not prompt")

    realm = S("realm", info="name of the realm for which metadata should be generated")

    locale = S("locale", info="the locale to be used for elements that require a language")

    service_name = S(
        "service_name", long="service-name", info="the name to apply to the attribute consuming service"
    )

    organisation_name = S(
        "organisation_name", long="organisation-name", info="the name of the organisation operating this service"
    )

    organisation_display_name = S(
        "organisation_display_name",
        long="organisation-display-name",
        info="the display-name of the organisation operating this service",
    )

    organisation_url = S(
        "organisation_url", long="organisation-url", info="the URL of the organisation operating this service"
    )

    contacts = S("contacts", default=False, typeconv=as_bool, info="include contact information in metadata")

    attributes = S("attributes", default=[], typeconv=as_list_of_string, cmdline=[], hidden=True)

    settings_overrides = S("settings_overrides", default={}, typeconv=as_dict_of_string, cmdline=[], hidden=True)

    @staticmethod
    def settings():
        s = list(filter(lambda p: isinstance(p, BaseSetting), vars(Config).values()))
        s.sort()
        return s

    def __str__(self):
        s = "# spmeta configuration\n"
        for p in self.settings():
            s += "{} = {}\n".format(p.name, p.value)
        return s

    def reset(self):
        for s in self.settings():
            s.value = None

    def find_setting(self, o):
        for s in self.settings():
            if o == s.short_name or o == s.long_name:
                return s
        return None

    @staticmethod
    def args(prg):
        short = ''
        long = []
        for s in config.settings():
            if s is not None and prg in s.cmdline:
                short += s.short_spec()
                long.append(s.long_spec())
        return short, long

    @staticmethod
    def help(prg):
        hlp = "Usage: {} [options+]\n\n".format(prg)
        for s in config.settings():
            if prg in s.cmdline and not s.hidden:
                h = " --{}".format(s.long_name)
                if s.short:
                    h += "|-{}".format(s.short)
                hlp += "{:36s} {} {}\n".format(h, s.info, s.default_fmt)
        return hlp


config = Config()


def parse_options(program, docs, argv=None):
    """
    Parse the command line (sys.argv by default) into :py:const:`config`. Values set by an earlier
    call are discarded. Returns the remaining positional arguments.
    """
    if argv is None:
        argv = sys.argv[1:]
    config.reset()
    (short_args, long_args) = config.args(program)
    docs += config.help(program)
    try:
        opts, args = getopt.getopt(argv, short_args, long_args)
    except getopt.error as msg:
        print(msg)
        print(docs)
        sys.exit(EX_USAGE)

    attributes = []
    overrides = {}
    try:
        for o, a in opts:
            if o in ('-h', '--help'):
                print(docs)
                sys.exit(EX_OK)
            elif o == '--version':
                print("{} version {}".format(program, spmeta_version))
                sys.exit(EX_OK)
            elif o == '--attribute':
                attributes.append(a)
            elif o in ('-E', '--setting'):
                (key, eq, value) = a.partition('=')
                if not key or eq != '=':
                    raise ValueError("Setting [{}] must be of the form key=value".format(a))
                overrides[key] = value
            else:
                o = o.lstrip('-')
                s = config.find_setting(o)
                if s is None:
                    raise ValueError("Unknown option {}".format(o))
                if s.is_flag:
                    a = True
                setattr(s, 'value', a)
    except ValueError as ex:
        print(ex)
        print(docs)
        sys.exit(EX_USAGE)

    if attributes:
        config.attributes = attributes
    if overrides:
        config.settings_overrides = overrides

    return args


def check_options(args=None):
    """
    Check the combination of options in :py:const:`config`.

    :raise UsageException: if positional arguments were given
    :raise ConfigurationException: if two options conflict or a required companion option is missing
    """
    if args:
        raise UsageException("Positional arguments not allowed, found {}".format(args))
    if config.organisation_display_name is not None and config.organisation_name is None:
        raise ConfigurationException("Option --organisation-display-name is only available with --organisation-name")
    if config.organisation_name is not None and config.organisation_url is None:
        raise ConfigurationException("Option --organisation-url is required when --organisation-name is specified")
    if config.contacts and config.batch:
        raise ConfigurationException("Option --contacts is not available with --batch")
    if config.verbose and config.silent:
        raise ConfigurationException("Options --verbose and --silent cannot be combined")
