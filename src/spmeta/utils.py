# coding=utf-8


"""

This module contains various utilities: XML serialization, safe file writing and schema validation.

"""
import os
import tempfile
import traceback
from importlib.resources import files
from threading import local

from lxml import etree

from .constants import METADATA_SCHEMA
from .logs import get_log

etree.set_default_parser(etree.XMLParser(resolve_entities=False))

log = get_log(__name__)

thread_data = local()


def xml_error(error_log, m=None):
    return "\n".join(xml_errors(error_log, m))


def xml_errors(error_log, m=None):
    def _f(x):
        if ":WARNING:" in x:
            return False
        if m is not None and m not in x:
            return False
        return True

    return list(filter(_f, ["%s" % e for e in error_log]))


def error_messages(ex):
    """
    Yield one message per problem reported by ex: each (non-warning) entry of an lxml error log, or the
    exception text, followed by the messages of the exception's cause.
    """
    seen = set()
    while ex is not None and id(ex) not in seen:
        seen.add(id(ex))
        entries = xml_errors(getattr(ex, 'error_log', None) or [])
        if entries:
            for e in entries:
                yield e
        else:
            yield str(ex)
        ex = ex.__cause__ if ex.__cause__ is not None else ex.__context__


def dumptree(t, pretty_print=False, method='xml', xml_declaration=True):
    """
Return a string representation of the tree, optionally pretty_print(ed) (default False)

:param t: An ElemenTree to serialize
    """
    return etree.tostring(t, encoding='UTF-8', method=method, xml_declaration=xml_declaration,
                          pretty_print=pretty_print)


def parse_xml(io, base_url=None):
    return etree.parse(io, base_url=base_url, parser=etree.XMLParser(resolve_entities=False, collect_ids=False))


class ResourceResolver(etree.Resolver):
    def resolve(self, system_url, public_id, context):
        """
        Resolves schema imports to the copies distributed in spmeta/schema
        """
        path = system_url.split("/")
        fn = path[len(path) - 1]
        schema_file = files(__package__).joinpath("schema").joinpath(fn)
        if schema_file.is_file():
            return self.resolve_string(schema_file.read_bytes(), context, base_url=system_url)
        else:
            raise ValueError("Unable to locate %s" % fn)


def schema(name=METADATA_SCHEMA):
    """
    Return the compiled schema spmeta/schema/<name>, cached per thread.
    """
    if not hasattr(thread_data, 'schemas'):
        thread_data.schemas = dict()

    if thread_data.schemas.get(name) is None:
        try:
            parser = etree.XMLParser(collect_ids=False, resolve_entities=False)
            parser.resolvers.add(ResourceResolver())
            xsd = files(__package__).joinpath("schema").joinpath(name)
            if not xsd.is_file():
                raise ValueError("Unable to locate schema %s" % name)
            st = etree.parse(str(xsd), parser)
            thread_data.schemas[name] = etree.XMLSchema(st)
        except etree.XMLSchemaParseError as ex:
            log.error(xml_error(ex.error_log))
            raise ex
    return thread_data.schemas[name]


def validate_document(t, name=METADATA_SCHEMA):
    schema(name).assertValid(t)


def _umask():
    old = os.umask(0)
    os.umask(old)
    return old


def safe_write(fn, data):
    """Safely write data to a file with name fn
    :param fn: a filename
    :param data: some string data to write
    :return: True or False depending on the outcome of the write
    """
    tmpn = None
    try:
        fn = os.path.expanduser(fn)
        dirname, basename = os.path.split(fn)
        kwargs = dict(delete=False, prefix=".%s" % basename, dir=dirname or os.curdir, encoding="utf-8")

        if isinstance(data, bytes):
            data = data.decode('utf-8')

        with tempfile.NamedTemporaryFile('w+', **kwargs) as tmp:
            log.debug("safe writing {} chrs into {}".format(len(data), fn))
            tmp.write(data)
            tmpn = tmp.name
        if os.path.exists(tmpn) and os.stat(tmpn).st_size > 0:
            os.chmod(tmpn, 0o666 & ~_umask())
            os.replace(tmpn, fn)
            return True
    except Exception as ex:
        log.debug(traceback.format_exc())
        log.error(ex)
    finally:
        if tmpn is not None and os.path.exists(tmpn):
            try:
                os.unlink(tmpn)
            except Exception as ex:
                log.warning(ex)
    return False
