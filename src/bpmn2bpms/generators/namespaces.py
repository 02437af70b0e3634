"""Namespace declarations on generated documents."""
from lxml import etree


def ensure_namespaces(root: etree._Element, nsmap: dict[str, str]) -> None:
    """Declare ``nsmap`` on the root element, keeping every existing root prefix.

    Prefixes that only appear inside attribute values (``xmi:type="process:Pool"``)
    must stay declared, so all current root prefixes are kept as well.
    """
    keep = [prefix for prefix in root.nsmap if prefix] + list(nsmap)
    etree.cleanup_namespaces(root, top_nsmap=nsmap, keep_ns_prefixes=keep)
