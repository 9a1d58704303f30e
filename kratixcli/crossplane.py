"""Promise parts derived from a Crossplane CompositeResourceDefinition.

The Promise API is the XRD's claim schema under a new group and kind,
extended with the fields every Crossplane claim accepts.  Requests are
turned into claims by the ``from-api-to-crossplane-claim`` aspect, which
reads the XRD's group, version and claim kind from its environment.
"""

from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from kratixcli.aspects.request import XRD_GROUP_ENV_VAR, XRD_KIND_ENV_VAR, XRD_VERSION_ENV_VAR
from kratixcli.promise import PromiseError

CROSSPLANE_CONTAINER_NAME = "from-api-to-crossplane-claim"
CROSSPLANE_CONTAINER_IMAGE = "ghcr.io/syntasso/kratix-cli/from-api-to-crossplane-claim:v0.1.0"
WORKFLOW_DIRECTORY = "workflows/resource/configure"
CROSSPLANE_DESTINATION_SELECTORS = [{"matchLabels": {"crossplane": "enabled"}}]

_STRING = {"type": "string"}
_STRING_MAP = {"type": "object", "additionalProperties": {"type": "string"}}


def _name_ref() -> dict[str, Any]:
    return {"type": "object", "properties": {"name": dict(_STRING)}, "required": ["name"]}


def _label_selector() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {"matchLabels": copy.deepcopy(_STRING_MAP)},
        "required": ["matchLabels"],
    }


MANDATORY_ADDITIONAL_CLAIM_FIELDS: dict[str, dict[str, Any]] = {
    "compositeDeletePolicy": {
        "type": "string",
        "enum": ["Background", "Foreground"],
        "default": "Background",
    },
    "compositionRef": _name_ref(),
    "compositionRevisionRef": _name_ref(),
    "compositionRevisionSelector": _label_selector(),
    "compositionSelector": _label_selector(),
    "compositionUpdatePolicy": {"type": "string", "enum": ["Automatic", "Manual"]},
    "publishConnectionDetailsTo": {
        "type": "object",
        "properties": {
            "configRef": {
                "type": "object",
                "properties": {"name": dict(_STRING)},
                "default": {"name": "default"},
            },
            "metadata": {
                "type": "object",
                "properties": {
                    "annotations": copy.deepcopy(_STRING_MAP),
                    "labels": copy.deepcopy(_STRING_MAP),
                    "type": dict(_STRING),
                },
            },
            "name": dict(_STRING),
        },
        "required": ["name"],
    },
    "resourceRef": {
        "type": "object",
        "properties": {
            "apiVersion": dict(_STRING),
            "kind": dict(_STRING),
            "name": dict(_STRING),
        },
        "required": ["apiVersion", "kind", "name"],
    },
    "writeConnectionSecretToRef": _name_ref(),
}


def get_xrd(path: str | os.PathLike) -> dict[str, Any]:
    """Read a CompositeResourceDefinition from ``path``."""
    try:
        contents = Path(path).read_text()
    except OSError as exc:
        raise PromiseError(f"failed to read file {path}: {exc}") from exc
    try:
        xrd = yaml.safe_load(contents)
    except yaml.YAMLError as exc:
        raise PromiseError(f"failed to unmarshal file {path}: {exc}") from exc
    if xrd is None:
        return {}
    if not isinstance(xrd, Mapping):
        raise PromiseError(f"failed to unmarshal file {path}: expected a mapping")
    return dict(xrd)


def _spec(xrd: Mapping[str, Any]) -> Mapping[str, Any]:
    spec = xrd.get("spec")
    return spec if isinstance(spec, Mapping) else {}


def get_xrd_stored_version(xrd: Mapping[str, Any]) -> dict[str, Any]:
    """Return the first served version of the XRD."""
    for version in _spec(xrd).get("versions") or []:
        if isinstance(version, Mapping) and version.get("served"):
            return dict(version)
    raise PromiseError("no served version found in XRD")


def generate_crd_from_xrd(
    version: Mapping[str, Any], group: str, kind: str, plural: str | None = None
) -> dict[str, Any]:
    """Build the Promise API CRD from one XRD version."""
    plural = plural or f"{kind.lower()}s"

    schema_holder = version.get("schema") or {}
    if not isinstance(schema_holder, Mapping):
        raise PromiseError("failed to unmarshal schema: expected a mapping")
    schema = copy.deepcopy(schema_holder.get("openAPIV3Schema") or {})
    if not isinstance(schema, dict):
        raise PromiseError("failed to unmarshal schema: expected a mapping")

    spec_schema = (schema.get("properties") or {}).get("spec")
    if not isinstance(spec_schema, dict):
        raise PromiseError("failed to unmarshal schema: no spec properties found")
    properties = spec_schema.setdefault("properties", {})
    for key, value in MANDATORY_ADDITIONAL_CLAIM_FIELDS.items():
        properties[key] = copy.deepcopy(value)

    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": f"{plural}.{group}"},
        "spec": {
            "group": group,
            "scope": "Namespaced",
            "names": {"plural": plural, "singular": kind.lower(), "kind": kind},
            "versions": [
                {
                    "name": version.get("name", ""),
                    "served": True,
                    "storage": True,
                    "schema": {"openAPIV3Schema": schema},
                }
            ],
        },
    }


def generate_dependencies_from_compositions(compositions_filepath: str | os.PathLike) -> list[dict[str, Any]]:
    """Read every Composition document in the file as a dependency."""
    try:
        contents = Path(compositions_filepath).read_text()
    except OSError as exc:
        raise PromiseError(f"failed to read file {compositions_filepath}: {exc}") from exc
    try:
        documents = list(yaml.safe_load_all(contents))
    except yaml.YAMLError as exc:
        raise PromiseError(f"Failed to decode YAML: {exc}") from exc

    dependencies = []
    for document in documents:
        if document is None:
            continue
        if not isinstance(document, Mapping):
            raise PromiseError("Failed to decode YAML: expected a mapping")
        dependencies.append(dict(document))
    return dependencies


def crossplane_env_vars(xrd: Mapping[str, Any], stored_version: Mapping[str, Any]) -> list[dict[str, str]]:
    """Environment of the container that turns requests into claims."""
    spec = _spec(xrd)
    claim_names = spec.get("claimNames") or {}
    return [
        {"name": XRD_GROUP_ENV_VAR, "value": str(spec.get("group") or "")},
        {"name": XRD_VERSION_ENV_VAR, "value": str(stored_version.get("name") or "")},
        {"name": XRD_KIND_ENV_VAR, "value": str(claim_names.get("kind") or "")},
    ]


def crossplane_flags(xrd_path: str, compositions: str = "", skip_dependencies: bool = False) -> str:
    """The command-line flags recorded with the generated Promise."""
    flags = f"--xrd {xrd_path}"
    if compositions:
        flags = f"{flags} --compositions {compositions}"
    if skip_dependencies:
        flags = f"{flags} --skip-dependencies"
    return flags