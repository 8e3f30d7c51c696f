"""
The SAML service provider metadata model and its XML rendering.

:py:class:`SpMetadataBuilder` accumulates the pieces of an SP's metadata and produces an immutable
:py:class:`MetadataDraft`; :py:func:`entity_descriptor` turns a draft into an md:EntityDescriptor element.
"""

from typing import List, Optional

from lxml.builder import ElementMaker
from pydantic import BaseModel, ConfigDict, Field, field_validator

from spmeta.constants import (
    BINDING_HTTP_POST,
    BINDING_HTTP_REDIRECT,
    DEFAULT_LANG,
    NF_URI,
    NS,
    SAML20P_NS,
)
from spmeta.credentials import Credential
from spmeta.logs import get_log

log = get_log(__name__)

#: The allowed values of ContactPerson/@contactType
CONTACT_TYPES = ('technical', 'support', 'administrative', 'billing', 'other')

KEY_USE_SIGNING = 'signing'
KEY_USE_ENCRYPTION = 'encryption'

XML_LANG = "{%s}lang" % NS['xml']


class RequestedAttribute(BaseModel):
    name: str
    friendly_name: Optional[str] = None
    model_config = ConfigDict(frozen=True)

    @field_validator('name')
    @classmethod
    def _name_not_empty(cls, v):
        if not v:
            raise ValueError("attribute name cannot be empty")
        return v


class Organization(BaseModel):
    name: str
    display_name: str
    url: str
    model_config = ConfigDict(frozen=True)


class Contact(BaseModel):
    type: str
    given_name: str
    surname: str
    email: str
    model_config = ConfigDict(frozen=True)

    @field_validator('type')
    @classmethod
    def _known_type(cls, v):
        if v not in CONTACT_TYPES:
            raise ValueError("contact type '{}' is not one of {}".format(v, ", ".join(CONTACT_TYPES)))
        return v

    @property
    def display_name(self):
        return "{} {}".format(self.given_name, self.surname)


class MetadataDraft(BaseModel):
    locale: str = DEFAULT_LANG
    entity_id: str
    service_name: Optional[str] = None
    asc_url: Optional[str] = None
    logout_url: Optional[str] = None
    name_id_format: Optional[str] = None
    authn_requests_signed: bool = False
    want_assertions_signed: bool = True
    signing_credential: Optional[Credential] = None
    encryption_credential: Optional[Credential] = None
    attributes: List[RequestedAttribute] = Field([])
    organization: Optional[Organization] = None
    contacts: List[Contact] = Field([])
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


class SpMetadataBuilder(object):
    """
    Collects the content of an SP metadata document. Every setter returns the builder so calls can be
    chained; :py:meth:`build` returns the collected values as a :py:class:`MetadataDraft`.
    """

    def __init__(self, locale: str, entity_id: str):
        self._locale = locale
        self._entity_id = entity_id
        self._service_name = None
        self._asc_url = None
        self._logout_url = None
        self._name_id_format = None
        self._authn_requests_signed = False
        self._signing_credential = None
        self._encryption_credential = None
        self._attributes = dict()
        self._organization = None
        self._contacts = []

    def service_name(self, name: Optional[str]) -> 'SpMetadataBuilder':
        self._service_name = name
        return self

    def assertion_consumer_service_url(self, url: Optional[str]) -> 'SpMetadataBuilder':
        self._asc_url = url
        return self

    def single_logout_service_url(self, url: Optional[str]) -> 'SpMetadataBuilder':
        self._logout_url = url
        return self

    def name_id_format(self, nameid_format: Optional[str]) -> 'SpMetadataBuilder':
        self._name_id_format = nameid_format
        return self

    def authn_requests_signed(self, signed: bool) -> 'SpMetadataBuilder':
        self._authn_requests_signed = bool(signed)
        return self

    def signing_credential(self, credential: Optional[Credential]) -> 'SpMetadataBuilder':
        self._signing_credential = credential
        return self

    def encryption_credential(self, credential: Optional[Credential]) -> 'SpMetadataBuilder':
        self._encryption_credential = credential
        return self

    def with_attribute(self, friendly_name: Optional[str], name: str) -> 'SpMetadataBuilder':
        """Request an attribute. Requesting the same name again replaces the friendly name."""
        if not name:
            raise ValueError("Attribute name cannot be empty (friendly name was [{}])".format(friendly_name))
        self._attributes[name] = friendly_name
        return self

    def organization(self, name: str, display_name: Optional[str], url: str) -> 'SpMetadataBuilder':
        self._organization = Organization(name=name, display_name=display_name or name, url=url)
        return self

    def with_contact(self, contact_type: str, given_name: str, surname: str, email: str) -> 'SpMetadataBuilder':
        self._contacts.append(Contact(type=contact_type, given_name=given_name, surname=surname, email=email))
        return self

    def build(self) -> MetadataDraft:
        return MetadataDraft(
            locale=self._locale,
            entity_id=self._entity_id,
            service_name=self._service_name,
            asc_url=self._asc_url,
            logout_url=self._logout_url,
            name_id_format=self._name_id_format,
            authn_requests_signed=self._authn_requests_signed,
            signing_credential=self._signing_credential,
            encryption_credential=self._encryption_credential,
            attributes=[RequestedAttribute(name=n, friendly_name=fn) for n, fn in self._attributes.items()],
            organization=self._organization,
            contacts=list(self._contacts),
        )


MD = ElementMaker(namespace=NS['md'], nsmap=dict(md=NS['md'], ds=NS['ds']))
DS = ElementMaker(namespace=NS['ds'], nsmap=dict(ds=NS['ds']))


def _bool(b: bool) -> str:
    return 'true' if b else 'false'


def _localized(tag, text, lang):
    return MD(tag, text, {XML_LANG: lang})


def key_descriptor(credential: Credential, use: str):
    return MD.KeyDescriptor(DS.KeyInfo(DS.X509Data(DS.X509Certificate(credential.b64))), use=use)


def attribute_consuming_service(draft: MetadataDraft):
    acs = MD.AttributeConsumingService(index="1", isDefault="true")
    acs.append(_localized('ServiceName', draft.service_name or "", draft.locale))
    for a in draft.attributes:
        ra = MD.RequestedAttribute(Name=a.name, NameFormat=NF_URI)
        if a.friendly_name:
            ra.set('FriendlyName', a.friendly_name)
        ra.set('isRequired', 'false')
        acs.append(ra)
    return acs


def sp_sso_descriptor(draft: MetadataDraft):
    sp = MD.SPSSODescriptor(
        protocolSupportEnumeration=SAML20P_NS,
        AuthnRequestsSigned=_bool(draft.authn_requests_signed),
        WantAssertionsSigned=_bool(draft.want_assertions_signed),
    )
    if draft.signing_credential is not None:
        sp.append(key_descriptor(draft.signing_credential, KEY_USE_SIGNING))
    if draft.encryption_credential is not None:
        sp.append(key_descriptor(draft.encryption_credential, KEY_USE_ENCRYPTION))
    if draft.logout_url:
        sp.append(MD.SingleLogoutService(Binding=BINDING_HTTP_REDIRECT, Location=draft.logout_url))
    if draft.name_id_format:
        sp.append(MD.NameIDFormat(draft.name_id_format))
    sp.append(
        MD.AssertionConsumerService(Binding=BINDING_HTTP_POST, Location=draft.asc_url or "", index="1", isDefault="true")
    )
    if draft.attributes:
        sp.append(attribute_consuming_service(draft))
    return sp


def organization(org: Organization, lang: str):
    return MD.Organization(
        _localized('OrganizationName', org.name, lang),
        _localized('OrganizationDisplayName', org.display_name, lang),
        _localized('OrganizationURL', org.url, lang),
    )


def contact_person(contact: Contact):
    return MD.ContactPerson(
        MD.GivenName(contact.given_name),
        MD.SurName(contact.surname),
        MD.EmailAddress(contact.email),
        contactType=contact.type,
    )


def entity_descriptor(draft: MetadataDraft):
    """
    Render the draft as an md:EntityDescriptor element.

    :param draft: A :py:class:`MetadataDraft`
    :return: an lxml Element
    """
    ed = MD.EntityDescriptor(entityID=draft.entity_id)
    ed.append(sp_sso_descriptor(draft))
    if draft.organization is not None:
        ed.append(organization(draft.organization, draft.locale))
    for c in draft.contacts:
        ed.append(contact_person(c))
    log.debug("rendered EntityDescriptor for {} with {} requested attributes".format(
        draft.entity_id, len(draft.attributes)))
    return ed
