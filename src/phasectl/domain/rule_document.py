"""Deployment-template patching for automatic deployment rules.

A rule's deployment template is a small XML document rooted at
``<DeploymentCreationActionXML>``.  The only edit ever made to it is
setting the deployment flag element to ``true`` or ``false``.

Shape contract for :func:`set_deployment_flag`:

- before: the document parses and has the expected root element;
- after: the root has exactly one flag child holding ``true``/``false``,
  and every other node is unchanged and in its original order.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from phasectl.domain.errors import RuleDocumentError

ROOT_TAG = "DeploymentCreationActionXML"
DEFAULT_FLAG = "EnableDeployment"


def _parse(document: str) -> ET.Element:
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        msg = f"Rule document is not well-formed XML: {exc}"
        raise RuleDocumentError(msg) from exc
    if root.tag != ROOT_TAG:
        msg = f"Expected <{ROOT_TAG}> root element, found <{root.tag}>"
        raise RuleDocumentError(msg, detail={"root": root.tag})
    return root


def read_deployment_flag(document: str, *, element: str = DEFAULT_FLAG) -> bool | None:
    """Return the flag value, or None when the element is absent."""
    node = _parse(document).find(element)
    if node is None:
        return None
    return (node.text or "").strip().lower() == "true"


def set_deployment_flag(document: str, *, enabled: bool, element: str = DEFAULT_FLAG) -> str:
    """Return *document* with the deployment flag set to *enabled*.

    The flag element is updated in place when present (extra copies are
    dropped) and appended to the root otherwise.
    """
    root = _parse(document)
    matches = root.findall(element)
    if matches:
        node = matches[0]
        for duplicate in matches[1:]:
            root.remove(duplicate)
    else:
        node = ET.SubElement(root, element)
    node.text = "true" if enabled else "false"
    return ET.tostring(root, encoding="unicode")
