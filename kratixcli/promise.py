"""Promise documents: loading, assembling and rendering Kratix Promises.

A Promise is either kept whole in ``promise.yaml`` or split across
``api.yaml``, ``dependencies.yaml`` and one ``workflow.yaml`` for each
lifecycle and action under ``workflows/``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

PLATFORM_GROUP = "platform.kratix.io"
PLATFORM_VERSION = "v1alpha1"
PLATFORM_API_VERSION = f"{PLATFORM_GROUP}/{PLATFORM_VERSION}"

PROMISE_FILE_NAME = "promise.yaml"
API_FILE_NAME = "api.yaml"
DEPENDENCIES_FILE_NAME = "dependencies.yaml"
WORKFLOW_FILE_NAME = "workflow.yaml"

LIFECYCLES = ("promise", "resource")
ACTIONS = ("configure", "delete")

SPLIT_FILES_MESSAGE = "No promise.yaml found, assuming --split was used to initialise the Promise"


class PromiseError(Exception):
    """A Promise or one of its parts could not be loaded or assembled."""


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _unmarshal_error(value: Any, target: str) -> PromiseError:
    return PromiseError(f"cannot unmarshal {_json_type(value)} into value of type {target}")


def _load_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise PromiseError(f"error converting YAML to JSON: {exc}") from exc


def _dump_yaml(data: Any) -> str:
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=True)


def _check_workflow_key(lifecycle: str, action: str) -> tuple[str, str]:
    if lifecycle not in LIFECYCLES:
        raise PromiseError(f"invalid lifecycle: {lifecycle}, expected one of: promise, resource")
    if action not in ACTIONS:
        raise PromiseError(f"invalid action: {action}, expected one of: configure, delete")
    return lifecycle, action


@dataclass
class Container:
    """One container of a pipeline."""

    name: str = ""
    image: str = ""
    env: list[dict[str, Any]] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        data["name"] = self.name
        data["image"] = self.image
        if self.env:
            data["env"] = [dict(var) for var in self.env]
        return data


def _container_from_dict(data: Any) -> Container:
    if not isinstance(data, Mapping):
        raise _unmarshal_error(data, "Container")
    extra = {k: v for k, v in data.items() if k not in ("name", "image", "env")}
    env = data.get("env") or []
    if not isinstance(env, list) or not all(isinstance(var, Mapping) for var in env):
        raise _unmarshal_error(env, "EnvVar")
    return Container(
        name=str(data.get("name") or ""),
        image=str(data.get("image") or ""),
        env=[dict(var) for var in env],
        extra=extra,
    )


@dataclass
class Pipeline:
    """A named list of containers run for one workflow."""

    name: str = ""
    containers: list[Container] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    spec: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        metadata = dict(self.metadata)
        metadata["name"] = self.name
        spec = dict(self.spec)
        spec["containers"] = [container.to_dict() for container in self.containers]
        return {
            "apiVersion": PLATFORM_API_VERSION,
            "kind": "Pipeline",
            "metadata": metadata,
            "spec": spec,
        }


def pipeline_from_dict(data: Any) -> Pipeline:
    """Build a Pipeline from its document form."""
    if not isinstance(data, Mapping):
        raise _unmarshal_error(data, "Pipeline")
    metadata = data.get("metadata") or {}
    if not isinstance(metadata, Mapping):
        raise _unmarshal_error(metadata, "ObjectMeta")
    spec = data.get("spec") or {}
    if not isinstance(spec, Mapping):
        raise _unmarshal_error(spec, "PipelineSpec")
    containers = spec.get("containers") or []
    if not isinstance(containers, list):
        raise _unmarshal_error(containers, "Container")
    return Pipeline(
        name=str(metadata.get("name") or ""),
        containers=[_container_from_dict(item) for item in containers],
        metadata={k: v for k, v in metadata.items() if k != "name"},
        spec={k: v for k, v in spec.items() if k != "containers"},
    )


def _pipelines_from(value: Any) -> list[Pipeline]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise _unmarshal_error(value, "[]Pipeline")
    return [pipeline_from_dict(item) for item in value]


def pipelines_to_unstructured(pipelines: Iterable[Pipeline]) -> list[dict[str, Any]]:
    """Render pipelines as documents carrying the Pipeline kind and API version."""
    return [pipeline.to_dict() for pipeline in pipelines]


def _dependencies_from(value: Any) -> list[dict[str, Any]] | None:
    if value is None:
        return None
    if not isinstance(value, list):
        raise _unmarshal_error(value, "Dependencies")
    dependencies = []
    for item in value:
        if not isinstance(item, Mapping):
            raise _unmarshal_error(item, "Dependency")
        dependencies.append(dict(item))
    return dependencies


@dataclass
class Promise:
    """A Kratix Promise with its API, dependencies and workflows."""

    name: str = ""
    kind: str = ""
    api_version: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    api: dict[str, Any] | None = None
    dependencies: list[dict[str, Any]] | None = None
    workflows: dict[tuple[str, str], list[Pipeline]] = field(default_factory=dict)
    metadata_extra: dict[str, Any] = field(default_factory=dict)
    spec_extra: dict[str, Any] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    def workflow(self, lifecycle: str, action: str) -> list[Pipeline]:
        """Return the pipelines of one lifecycle and action."""
        key = _check_workflow_key(lifecycle, action)
        return list(self.workflows.get(key, []))

    def set_workflow(self, lifecycle: str, action: str, pipelines: Iterable[Pipeline | Mapping[str, Any]]) -> None:
        """Replace the pipelines of one lifecycle and action."""
        key = _check_workflow_key(lifecycle, action)
        self.workflows[key] = [
            item if isinstance(item, Pipeline) else pipeline_from_dict(item) for item in pipelines
        ]

    def has_workflows(self) -> bool:
        """Whether any lifecycle and action holds at least one pipeline."""
        return any(self.workflows.get((lc, ac)) for lc in LIFECYCLES for ac in ACTIONS)

    def _workflows_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for lifecycle in LIFECYCLES:
            actions = {
                action: pipelines_to_unstructured(self.workflows[(lifecycle, action)])
                for action in ACTIONS
                if self.workflows.get((lifecycle, action))
            }
            if actions:
                result[lifecycle] = actions
        return result

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.extra)
        if self.api_version:
            data["apiVersion"] = self.api_version
        if self.kind:
            data["kind"] = self.kind

        metadata: dict[str, Any] = dict(self.metadata_extra)
        if self.name:
            metadata["name"] = self.name
        if self.labels:
            metadata["labels"] = dict(self.labels)
        data["metadata"] = metadata

        spec: dict[str, Any] = dict(self.spec_extra)
        if self.api is not None:
            spec["api"] = self.api
        if self.dependencies:
            spec["dependencies"] = [dict(dep) for dep in self.dependencies]
        workflows = self._workflows_dict()
        if workflows:
            spec["workflows"] = workflows
        data["spec"] = spec
        return data


def promise_from_dict(data: Any) -> Promise:
    """Build a Promise from its document form."""
    if data is None:
        return Promise()
    if not isinstance(data, Mapping):
        raise _unmarshal_error(data, "Promise")

    metadata = data.get("metadata") or {}
    if not isinstance(metadata, Mapping):
        raise _unmarshal_error(metadata, "ObjectMeta")
    spec = data.get("spec") or {}
    if not isinstance(spec, Mapping):
        raise _unmarshal_error(spec, "PromiseSpec")

    labels = metadata.get("labels") or {}
    if not isinstance(labels, Mapping):
        raise _unmarshal_error(labels, "map[string]string")

    api = spec.get("api")
    if api is not None and not isinstance(api, Mapping):
        raise _unmarshal_error(api, "CustomResourceDefinition")

    promise = Promise(
        name=str(metadata.get("name") or ""),
        kind=str(data.get("kind") or ""),
        api_version=str(data.get("apiVersion") or ""),
        labels={str(k): str(v) for k, v in labels.items()},
        api=dict(api) if api is not None else None,
        dependencies=_dependencies_from(spec.get("dependencies")),
        metadata_extra={k: v for k, v in metadata.items() if k not in ("name", "labels")},
        spec_extra={k: v for k, v in spec.items() if k not in ("api", "dependencies", "workflows")},
        extra={k: v for k, v in data.items() if k not in ("apiVersion", "kind", "metadata", "spec")},
    )

    workflows = spec.get("workflows") or {}
    if not isinstance(workflows, Mapping):
        raise _unmarshal_error(workflows, "Workflows")
    for lifecycle in LIFECYCLES:
        actions = workflows.get(lifecycle) or {}
        if not isinstance(actions, Mapping):
            raise _unmarshal_error(actions, "WorkflowTriggers")
        for action in ACTIONS:
            pipelines = _pipelines_from(actions.get(action))
            if pipelines:
                promise.set_workflow(lifecycle, action, pipelines)
    return promise


def new_promise(promise_name: str) -> Promise:
    """A fresh Promise carrying the initial version label."""
    return Promise(
        name=promise_name,
        kind="Promise",
        api_version=PLATFORM_API_VERSION,
        labels={"kratix.io/promise-version": "v0.0.1"},
    )


def file_exists(path: str | os.PathLike) -> bool:
    """Whether ``path`` can be stat'ed."""
    try:
        os.stat(path)
    except OSError:
        return False
    return True


def load_workflows(directory: str | os.PathLike) -> dict[tuple[str, str], list[Pipeline]]:
    """Read the split workflow files found under ``directory/workflows``."""
    workflows: dict[tuple[str, str], list[Pipeline]] = {}
    for lifecycle in LIFECYCLES:
        for action in ACTIONS:
            path = Path(directory, "workflows", lifecycle, action, WORKFLOW_FILE_NAME)
            if not file_exists(path):
                continue
            text = path.read_text()
            try:
                pipelines = _pipelines_from(_load_yaml(text))
            except PromiseError as exc:
                raise PromiseError(f"failed to get {lifecycle} {action} workflow: {exc}") from exc
            workflows[(lifecycle, action)] = pipelines
    return workflows


def load_promise_with_workflows(directory: str | os.PathLike) -> Promise:
    """Load ``promise.yaml``, or the split workflow files when it is absent."""
    promise_path = Path(directory, PROMISE_FILE_NAME)
    try:
        promise_path.stat()
    except FileNotFoundError:
        print(SPLIT_FILES_MESSAGE)
        promise = Promise()
        for (lifecycle, action), pipelines in load_workflows(directory).items():
            promise.set_workflow(lifecycle, action, pipelines)
        return promise

    return promise_from_dict(_load_yaml(promise_path.read_text()))


def build_promise(
    promise_name: str,
    input_dir: str | os.PathLike = ".",
    output_path: str | os.PathLike | None = None,
) -> Promise:
    """Assemble a Promise from the files in ``input_dir``.

    The rendered Promise goes to ``output_path`` when one is given and to
    standard output otherwise.
    """
    promise = load_promise_with_workflows(input_dir)
    promise.kind = "Promise"
    promise.api_version = PLATFORM_API_VERSION
    promise.name = promise_name

    api_path = Path(input_dir, API_FILE_NAME)
    if file_exists(api_path):
        api_text = api_path.read_text()
        if api_text:
            crd = _load_yaml(api_text)
            if crd is None:
                crd = {}
            if not isinstance(crd, Mapping):
                raise _unmarshal_error(crd, "CustomResourceDefinition")
            promise.api = dict(crd)

    dependencies_path = Path(input_dir, DEPENDENCIES_FILE_NAME)
    if file_exists(dependencies_path):
        promise.dependencies = _dependencies_from(_load_yaml(dependencies_path.read_text()))

    rendered = _dump_yaml(promise.to_dict())
    if output_path:
        Path(output_path).write_text(rendered)
    else:
        print(rendered)
    return promise