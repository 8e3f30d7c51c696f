"""
spmeta generates SAML Service Provider metadata for a realm

"""
import locale as _locale
import logging
import os
import re
import sys
import traceback
from typing import Dict, Optional

from lxml import etree

from spmeta.constants import DEFAULT_LANG, DEFAULT_SERVICE_NAME, METADATA_SCHEMA, check_options, config, parse_options
from spmeta.exceptions import EX_IOERR, EX_OK, ConfigurationException, SchemaValidationException, SpmetaException
from spmeta.logs import get_log, log_level
from spmeta.realm import attribute_settings, find_realm, nameid_format, sp_configuration
from spmeta.samlmd import CONTACT_TYPES, MetadataDraft, SpMetadataBuilder, entity_descriptor
from spmeta.settings import Settings, load_settings
from spmeta.terminal import Terminal, Verbosity, require_text
from spmeta.utils import dumptree, error_messages, parse_xml, safe_write, validate_document

log = get_log(__name__)

_LANG_RE = re.compile(r'^([a-zA-Z]{1,8})(?:[_-]([a-zA-Z0-9]{1,8}))?(?:[_-]([a-zA-Z0-9]{1,8}))?$')


def language_tag(value: str) -> str:
    """
    Turn a locale such as en_US, en-us or de_DE.UTF-8 into a language tag (en-US) usable in xml:lang.

    :raise ConfigurationException: if value is not a locale
    """
    v = value.split('.')[0].split('@')[0]
    m = _LANG_RE.match(v)
    if m is None:
        raise ConfigurationException("Invalid locale '{}'".format(value))
    parts = [m.group(1).lower()]
    if m.group(2):
        parts.append(m.group(2).upper() if len(m.group(2)) == 2 else m.group(2))
    if m.group(3):
        parts.append(m.group(3))
    return "-".join(parts)


def find_locale(value: Optional[str] = None) -> str:
    if value:
        return language_tag(value)
    try:
        lc = _locale.getlocale()[0]
    except ValueError:
        lc = None
    if lc and lc not in ('C', 'POSIX'):
        try:
            return language_tag(lc)
        except ConfigurationException:
            log.debug("ignoring unusable process locale {}".format(lc))
    return DEFAULT_LANG


def attribute_names(attributes, realm) -> Dict[str, Optional[str]]:
    """
    Map of saml attribute to the name of the setting it was configured in (None for attributes given on the
    command line). Settings are added in sorted order so the result is deterministic.
    """
    res = dict()
    for a in attributes or []:
        res[a] = None
    configured = attribute_settings(realm)
    for key in sorted(configured.keys()):
        res[configured[key]] = key
    return res


def _request_attributes(terminal: Terminal, builder: SpMetadataBuilder, attributes: Dict[str, Optional[str]],
                        batch: bool):
    for attr, setting_name in attributes.items():
        source = "command line" if setting_name is None else '"{}"'.format(setting_name)
        if ':' in attr:
            name = attr
            if batch:
                friendly_name = setting_name
            else:
                friendly_name = terminal.read_text(
                    'What is the friendly name for {} attribute "{}" [default: {}] '.format(
                        source, attr, "none" if setting_name is None else setting_name
                    )
                )
                if not friendly_name:
                    friendly_name = setting_name
        else:
            if batch:
                raise ConfigurationException(
                    "Option --batch is specified, but attribute {} appears to be a FriendlyName value".format(attr)
                )
            friendly_name = attr
            name = require_text(
                terminal, 'What is the standard (urn) name for {} attribute "{}" (required): '.format(source, attr)
            )
        terminal.println("Requesting attribute '{}' (FriendlyName: '{}')".format(name, friendly_name),
                         Verbosity.VERBOSE)
        builder.with_attribute(friendly_name, name)


def _read_contact_type(terminal: Terminal, display_name: str) -> str:
    while True:
        contact_type = require_text(terminal, "What is the contact type for {}: ".format(display_name))
        if contact_type in CONTACT_TYPES:
            return contact_type
        terminal.println("Type '{}' is not valid. Valid values are {}".format(contact_type, ", ".join(CONTACT_TYPES)))


def _request_contacts(terminal: Terminal, builder: SpMetadataBuilder):
    terminal.println("\nPlease enter the personal details for each contact to be included in the metadata")
    while True:
        given_name = require_text(terminal, "What is the given name for the contact: ")
        surname = require_text(terminal, "What is the surname for the contact: ")
        display_name = "{} {}".format(given_name, surname)
        email = require_text(terminal, "What is the email address for {}: ".format(display_name))
        contact_type = _read_contact_type(terminal, display_name)
        builder.with_contact(contact_type, given_name, surname, email)
        if not terminal.prompt_yes_no("Enter details for another contact", True):
            break


def build_entity_descriptor(terminal: Terminal, settings: Settings, config_file: Optional[str] = None) -> MetadataDraft:
    """
    Collect the metadata for the selected realm from the settings, the command line options and (unless
    --batch is given) the operator.
    """
    batch = bool(config.batch)
    config_dir = os.path.dirname(config_file) if config_file else None

    realm = find_realm(terminal, settings, config.realm, config_file=config_file, config_dir=config_dir)
    terminal.println("Using realm configuration\n=====\n{}=====".format(realm.settings.to_delimited_string('\n')),
                     Verbosity.VERBOSE)
    lang = find_locale(config.locale)
    terminal.println("Using locale: {}".format(lang), Verbosity.VERBOSE)

    sp = sp_configuration(realm)
    service_name = config.service_name
    if service_name is None:
        service_name = settings.get("cluster.name", DEFAULT_SERVICE_NAME)
    builder = (
        SpMetadataBuilder(lang, sp.entity_id)
        .assertion_consumer_service_url(sp.asc_url)
        .single_logout_service_url(sp.logout_url)
        .encryption_credential(sp.encryption_credential)
        .signing_credential(sp.signing.credential)
        .authn_requests_signed(sp.signing.should_sign("AuthnRequest"))
        .name_id_format(nameid_format(realm))
        .service_name(service_name)
    )

    _request_attributes(terminal, builder, attribute_names(config.attributes, realm), batch)

    if config.organisation_name is not None and config.organisation_url is not None:
        builder.organization(config.organisation_name, config.organisation_display_name, config.organisation_url)

    if config.contacts:
        _request_contacts(terminal, builder)

    draft = builder.build()
    for c in draft.contacts:
        terminal.println("Including {} contact {} <{}>".format(c.type, c.display_name, c.email), Verbosity.VERBOSE)
    return draft


def write_output(terminal: Terminal, draft: MetadataDraft, out: Optional[str] = None) -> str:
    element = entity_descriptor(draft)
    output_file = os.path.normpath(out or config.out)
    if not safe_write(output_file, dumptree(element, pretty_print=True)):
        raise SpmetaException("Unable to write SAML metadata to {}".format(output_file), exit_code=EX_IOERR)
    terminal.println("\nWrote SAML metadata to {}".format(output_file))
    return output_file


def validate_xml(terminal: Terminal, xml: str):
    """
    Validate the file xml against the SAML metadata schema.

    :raise SchemaValidationException: if the file does not conform to the schema
    """
    try:
        with open(xml, 'rb') as fd:
            validate_document(parse_xml(fd), METADATA_SCHEMA)
        terminal.println("The generated metadata file conforms to the SAML metadata schema", Verbosity.VERBOSE)
    except (etree.DocumentInvalid, etree.XMLSyntaxError) as ex:
        terminal.println("Error - The generated metadata file does not conform to the SAML metadata schema",
                         Verbosity.SILENT)
        terminal.println("While validating {} the follow errors were found:".format(xml))
        for msg in error_messages(ex):
            terminal.println(" - {}".format(msg))
        raise SchemaValidationException("Generated metadata is not valid", wrapped=ex) from ex
    except OSError as ex:
        raise SpmetaException("Unable to read {}: {}".format(xml, ex.strerror), wrapped=ex, exit_code=EX_IOERR)


def _verbosity():
    if config.silent:
        return Verbosity.SILENT
    if config.verbose:
        return Verbosity.VERBOSE
    return Verbosity.NORMAL


def _configure_logging():
    log_args = {'level': log_level(config.loglevel)}
    if config.logfile is not None:
        log_args['filename'] = config.logfile
    try:
        logging.basicConfig(**log_args)
    except OSError as ex:
        raise ConfigurationException("Unable to open log file {}: {}".format(config.logfile, ex.strerror), wrapped=ex)


def main(terminal=None):
    """
    The main entrypoint for the spmeta cmdline tool.
    """
    args = parse_options("spmeta", __doc__)

    if terminal is None:
        terminal = Terminal()
    try:
        check_options(args)
        _configure_logging()
        terminal.verbosity = _verbosity()
        settings, config_file = load_settings(config.path_conf, config.settings_file, config.settings_overrides)
        draft = build_entity_descriptor(terminal, settings, config_file)
        xml = write_output(terminal, draft)
        validate_xml(terminal, xml)
        sys.exit(EX_OK)
    except SpmetaException as ex:
        log.debug(traceback.format_exc())
        terminal.error_println("ERROR: {}".format(ex), Verbosity.SILENT)
        sys.exit(ex.exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
