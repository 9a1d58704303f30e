"""Turn a Kratix resource request into a Terraform JSON module call."""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml

from kratixcli.aspects.request import MissingEnvironmentError

DEFAULT_INPUT_FILE = "/kratix/input/object.yaml"
DEFAULT_OUTPUT_DIR = "/kratix/output"


def get_env(key: str, default_value: str) -> str:
    """Return an environment variable, or ``default_value`` when unset."""
    return os.environ.get(key, default_value)


def must_have_env(key: str) -> str:
    """Return an environment variable that must be set."""
    try:
        return os.environ[key]
    except KeyError:
        raise MissingEnvironmentError(
            key, f"Error: {key} environment variable is not set"
        ) from None


def _unique_name(data: Mapping[str, Any]) -> str:
    metadata = data.get("metadata")
    if not isinstance(metadata, Mapping):
        raise ValueError("Error: metadata section not found in YAML file")

    def text(value: Any) -> str:
        return value if isinstance(value, str) else ""

    namespace = text(metadata.get("namespace"))
    name = text(metadata.get("name"))
    kind = text(data.get("kind"))
    if not (namespace and name and kind):
        raise ValueError("Error: metadata.namespace, metadata.name, or kind is missing")
    return f"{kind}_{namespace}_{name}".lower()


def build_module(data: Mapping[str, Any], module_source: str, module_version: str) -> dict[str, Any]:
    """Build the Terraform JSON document calling the module with the request's spec."""
    unique_name = _unique_name(data)

    spec = data.get("spec")
    if not isinstance(spec, Mapping):
        raise ValueError("Error: .spec section not found in YAML file")

    arguments: dict[str, Any] = {"source": f"git::{module_source}?ref={module_version}"}
    for key, value in spec.items():
        # leave out nulls and empty lists
        if isinstance(value, list) and not value:
            continue
        if value is None:
            continue
        arguments[key] = value

    return {"module": {unique_name: arguments}}


def write_module(
    data: Mapping[str, Any], module_source: str, module_version: str, output_dir: str | os.PathLike
) -> Path:
    """Write the module document into ``output_dir`` and return the file's path."""
    module = build_module(data, module_source, module_version)
    unique_name = next(iter(module["module"]))
    rendered = json.dumps(module, indent=2, sort_keys=True)

    directory = Path(output_dir)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OSError(f"Error creating output directory: {exc}") from exc

    path = directory / f"{unique_name}.tf.json"
    try:
        path.write_text(rendered)
    except OSError as exc:
        raise OSError(f"Error writing Terraform JSON file: {exc}") from exc
    return path


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the Terraform module aspect; returns the exit status."""
    yaml_file = get_env("KRATIX_INPUT_FILE", DEFAULT_INPUT_FILE)
    output_dir = get_env("KRATIX_OUTPUT_DIR", DEFAULT_OUTPUT_DIR)
    try:
        module_source = must_have_env("MODULE_SOURCE")
        module_version = must_have_env("MODULE_VERSION")
    except MissingEnvironmentError as exc:
        print(exc, file=sys.stderr)
        return 2

    try:
        try:
            contents = Path(yaml_file).read_text()
        except OSError as exc:
            raise OSError(f"Error reading YAML file {yaml_file}: {exc}") from exc
        try:
            data = yaml.safe_load(contents)
        except yaml.YAMLError as exc:
            raise ValueError(f"Error parsing YAML file: {exc}") from exc
        if not isinstance(data, Mapping):
            raise ValueError("Error: metadata section not found in YAML file")
        path = write_module(data, module_source, module_version, output_dir)
    except (OSError, ValueError) as exc:
        print(exc, file=sys.stderr)
        return 1

    print(f"Terraform JSON configuration written to {path}")
    return 0