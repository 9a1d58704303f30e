"""Turn a Kratix resource request into an object of another API.

The operator and Crossplane aspects both read the request object that
Kratix hands to a pipeline container, and write an object of the
configured group, version and kind carrying the request's name, labels,
annotations and spec.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

DEFAULT_INPUT_FILE = "/kratix/input/object.yaml"
DEFAULT_OUTPUT_FILE = "/kratix/output/object.yaml"

INPUT_FILE_ENV_VAR = "KRATIX_INPUT_FILE"
OUTPUT_FILE_ENV_VAR = "KRATIX_OUTPUT_FILE"

OPERATOR_GROUP_ENV_VAR = "OPERATOR_GROUP"
OPERATOR_VERSION_ENV_VAR = "OPERATOR_VERSION"
OPERATOR_KIND_ENV_VAR = "OPERATOR_KIND"

XRD_GROUP_ENV_VAR = "XRD_GROUP"
XRD_VERSION_ENV_VAR = "XRD_VERSION"
XRD_KIND_ENV_VAR = "XRD_KIND"


class MissingEnvironmentError(Exception):
    """A required environment variable is unset or empty."""

    def __init__(self, env_var: str, message: str | None = None) -> None:
        super().__init__(message or f"Expected {env_var} to be set")
        self.env_var = env_var


def get_env_or_die(env_var: str) -> str:
    """Return the value of ``env_var``; an unset or empty one is an error."""
    value = os.environ.get(env_var, "")
    if not value:
        raise MissingEnvironmentError(env_var)
    return value


def _env_or_default(env_var: str, default: str) -> str:
    return os.environ.get(env_var) or default


def _string_map(value: Any) -> dict[str, str] | None:
    if isinstance(value, Mapping) and value:
        return {str(key): val for key, val in value.items()}
    return None


def _build_output(request: Mapping[str, Any], group: str, version: str, kind: str) -> dict[str, Any]:
    metadata_in = request.get("metadata")
    if not isinstance(metadata_in, Mapping):
        metadata_in = {}

    metadata: dict[str, Any] = {"namespace": "default"}
    name = metadata_in.get("name")
    if isinstance(name, str) and name:
        metadata["name"] = name
    labels = _string_map(metadata_in.get("labels"))
    if labels:
        metadata["labels"] = labels
    annotations = _string_map(metadata_in.get("annotations"))
    if annotations:
        metadata["annotations"] = annotations

    spec = request.get("spec")
    if spec is None:
        # an absent spec would otherwise be written as null, which is invalid
        spec = {}

    return {
        "apiVersion": f"{group}/{version}",
        "kind": kind,
        "metadata": metadata,
        "spec": spec,
    }


def transform_input_to_output(group: str, version: str, kind: str) -> dict[str, Any]:
    """Read the request object, write the transformed object and return it."""
    input_file = _env_or_default(INPUT_FILE_ENV_VAR, DEFAULT_INPUT_FILE)
    output_file = _env_or_default(OUTPUT_FILE_ENV_VAR, DEFAULT_OUTPUT_FILE)

    try:
        contents = Path(input_file).read_text()
    except OSError as exc:
        raise OSError(f"Failed to read object file from {input_file}: {exc}") from exc

    try:
        request = yaml.safe_load(contents)
    except yaml.YAMLError as exc:
        raise ValueError(f"Failed to unmarshal object file: {exc}") from exc
    if request is None:
        request = {}
    if not isinstance(request, Mapping):
        raise ValueError("Failed to unmarshal object file: expected a mapping")

    output = _build_output(request, group, version, kind)
    rendered = yaml.safe_dump(output, default_flow_style=False, sort_keys=True)

    try:
        Path(output_file).write_text(rendered)
    except OSError as exc:
        raise OSError(f"Failed to write object file to {output_file}: {exc}") from exc

    return output


def _run(group_var: str, version_var: str, kind_var: str) -> int:
    try:
        group = get_env_or_die(group_var)
        version = get_env_or_die(version_var)
        kind = get_env_or_die(kind_var)
        transform_input_to_output(group, version, kind)
    except (MissingEnvironmentError, OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


def operator_main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the operator aspect; returns the exit status."""
    return _run(OPERATOR_GROUP_ENV_VAR, OPERATOR_VERSION_ENV_VAR, OPERATOR_KIND_ENV_VAR)


def crossplane_main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the Crossplane claim aspect; returns the exit status."""
    return _run(XRD_GROUP_ENV_VAR, XRD_VERSION_ENV_VAR, XRD_KIND_ENV_VAR)