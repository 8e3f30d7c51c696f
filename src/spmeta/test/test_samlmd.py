import shutil
import tempfile
from unittest import TestCase

from lxml import etree
from pydantic import ValidationError

from spmeta.constants import BINDING_HTTP_POST, BINDING_HTTP_REDIRECT, NAMEID_FORMAT_TRANSIENT, NF_URI, NS
from spmeta.credentials import load_credential
from spmeta.samlmd import SpMetadataBuilder, entity_descriptor
from spmeta.test import generate_credential
from spmeta.utils import validate_document

XML_LANG = "{%s}lang" % NS['xml']


def _md(tag):
    return "{%s}%s" % (NS['md'], tag)


class TestBuilder(TestCase):

    def _builder(self):
        return (
            SpMetadataBuilder("en", "urn:test")
            .assertion_consumer_service_url("https://kibana.example.com/api/security/v1/saml")
            .name_id_format(NAMEID_FORMAT_TRANSIENT)
            .service_name("elasticsearch")
        )

    def test_build(self):
        draft = self._builder().with_attribute("principal", "urn:oid:1").build()
        self.assertEqual(draft.entity_id, "urn:test")
        self.assertEqual(draft.locale, "en")
        self.assertEqual([a.name for a in draft.attributes], ["urn:oid:1"])
        self.assertFalse(draft.authn_requests_signed)
        self.assertTrue(draft.want_assertions_signed)
        self.assertIsNone(draft.organization)
        self.assertEqual(draft.contacts, [])

    def test_attributes_deduplicated_by_name(self):
        draft = (
            self._builder()
            .with_attribute("principal", "urn:oid:1")
            .with_attribute(None, "urn:oid:2")
            .with_attribute("uid", "urn:oid:1")
            .build()
        )
        self.assertEqual([a.name for a in draft.attributes], ["urn:oid:1", "urn:oid:2"])
        self.assertEqual(draft.attributes[0].friendly_name, "uid")
        self.assertIsNone(draft.attributes[1].friendly_name)

    def test_empty_attribute_name(self):
        with self.assertRaises(ValueError):
            self._builder().with_attribute("principal", "")

    def test_organization_display_name_defaults_to_name(self):
        draft = self._builder().organization("Example", None, "https://example.com/").build()
        self.assertEqual(draft.organization.display_name, "Example")
        draft = self._builder().organization("Example", "Example Inc", "https://example.com/").build()
        self.assertEqual(draft.organization.display_name, "Example Inc")

    def test_contact(self):
        draft = self._builder().with_contact("technical", "Jane", "Doe", "jane@example.com").build()
        self.assertEqual(draft.contacts[0].display_name, "Jane Doe")

    def test_bad_contact_type(self):
        with self.assertRaises(ValidationError):
            self._builder().with_contact("janitorial", "Jane", "Doe", "jane@example.com")

    def test_draft_is_frozen(self):
        draft = self._builder().build()
        with self.assertRaises(ValidationError):
            draft.entity_id = "urn:other"


class TestEntityDescriptor(TestCase):

    @classmethod
    def setUpClass(cls):
        cls.tmpdir = tempfile.mkdtemp(prefix='spmeta-test-')
        cert, key = generate_credential(cls.tmpdir)
        cls.credential = load_credential(cert, key)

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(cls.tmpdir)

    def _full(self):
        return (
            SpMetadataBuilder("en-US", "https://kibana.example.com/")
            .assertion_consumer_service_url("https://kibana.example.com/api/security/v1/saml")
            .single_logout_service_url("https://kibana.example.com/logout")
            .name_id_format(NAMEID_FORMAT_TRANSIENT)
            .service_name("kibana")
            .signing_credential(self.credential)
            .encryption_credential(self.credential)
            .authn_requests_signed(True)
            .with_attribute("principal", "urn:oid:0.9.2342.19200300.100.1.1")
            .with_attribute(None, "urn:oid:1.3.6.1.4.1.5923.1.5.1.1")
            .organization("Example", "Example Inc", "https://example.com/")
            .with_contact("technical", "Jane", "Doe", "jane@example.com")
            .with_contact("support", "John", "Smith", "john@example.com")
            .build()
        )

    def test_minimal(self):
        draft = (
            SpMetadataBuilder("en", "urn:test")
            .assertion_consumer_service_url("https://kibana.example.com/api/security/v1/saml")
            .build()
        )
        ed = entity_descriptor(draft)
        validate_document(etree.ElementTree(ed))
        self.assertEqual(ed.tag, _md("EntityDescriptor"))
        self.assertEqual(ed.get("entityID"), "urn:test")
        sp = ed.find(_md("SPSSODescriptor"))
        self.assertEqual(sp.get("AuthnRequestsSigned"), "false")
        self.assertEqual(sp.get("WantAssertionsSigned"), "true")
        self.assertEqual([c.tag for c in sp], [_md("AssertionConsumerService")])
        self.assertIsNone(ed.find(_md("Organization")))
        self.assertEqual(len(ed.findall(_md("ContactPerson"))), 0)

    def test_full(self):
        ed = entity_descriptor(self._full())
        validate_document(etree.ElementTree(ed))

        self.assertEqual([c.tag for c in ed], [
            _md("SPSSODescriptor"), _md("Organization"), _md("ContactPerson"), _md("ContactPerson")
        ])
        sp = ed.find(_md("SPSSODescriptor"))
        self.assertEqual(sp.get("AuthnRequestsSigned"), "true")
        self.assertEqual([c.tag for c in sp], [
            _md("KeyDescriptor"),
            _md("KeyDescriptor"),
            _md("SingleLogoutService"),
            _md("NameIDFormat"),
            _md("AssertionConsumerService"),
            _md("AttributeConsumingService"),
        ])
        self.assertEqual([kd.get("use") for kd in sp.findall(_md("KeyDescriptor"))], ["signing", "encryption"])
        x509 = sp.find(".//{%s}X509Certificate" % NS['ds'])
        self.assertEqual(x509.text, self.credential.b64)

        slo = sp.find(_md("SingleLogoutService"))
        self.assertEqual(slo.get("Binding"), BINDING_HTTP_REDIRECT)
        acs = sp.find(_md("AssertionConsumerService"))
        self.assertEqual(acs.get("Binding"), BINDING_HTTP_POST)
        self.assertEqual(acs.get("index"), "1")
        self.assertEqual(acs.get("isDefault"), "true")

        service = sp.find(_md("AttributeConsumingService"))
        self.assertEqual(service.find(_md("ServiceName")).text, "kibana")
        self.assertEqual(service.find(_md("ServiceName")).get(XML_LANG), "en-US")
        attrs = service.findall(_md("RequestedAttribute"))
        self.assertEqual(len(attrs), 2)
        self.assertEqual(attrs[0].get("Name"), "urn:oid:0.9.2342.19200300.100.1.1")
        self.assertEqual(attrs[0].get("FriendlyName"), "principal")
        self.assertEqual(attrs[0].get("NameFormat"), NF_URI)
        self.assertEqual(attrs[0].get("isRequired"), "false")
        self.assertIsNone(attrs[1].get("FriendlyName"))

        org = ed.find(_md("Organization"))
        self.assertEqual(org.find(_md("OrganizationDisplayName")).text, "Example Inc")
        self.assertEqual(org.find(_md("OrganizationURL")).get(XML_LANG), "en-US")

        contact = ed.find(_md("ContactPerson"))
        self.assertEqual(contact.get("contactType"), "technical")
        self.assertEqual(contact.find(_md("GivenName")).text, "Jane")
        self.assertEqual(contact.find(_md("SurName")).text, "Doe")
        self.assertEqual(contact.find(_md("EmailAddress")).text, "jane@example.com")
