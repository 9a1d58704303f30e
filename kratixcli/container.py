"""Adding containers to Promise workflows and building their images.

A container lives in a pipeline of one lifecycle (``promise`` or
``resource``) and one action (``configure`` or ``delete``).  Its sources
are kept under ``workflows/<lifecycle>/<action>/<pipeline>/<container>``.
"""

from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence

import yaml

from kratixcli.promise import (
    ACTIONS,
    API_FILE_NAME,
    DEPENDENCIES_FILE_NAME,
    LIFECYCLES,
    PROMISE_FILE_NAME,
    WORKFLOW_FILE_NAME,
    Container,
    Pipeline,
    Promise,
    PromiseError,
    file_exists,
    load_promise_with_workflows,
    pipeline_from_dict,
    pipelines_to_unstructured,
    promise_from_dict,
)

SUPPORTED_ENGINES = ("docker", "podman")
PIPELINE_SCRIPT_FILE_NAME = "pipeline.sh"

_PIPELINE_SCRIPT = """#!/usr/bin/env sh

set -eux

# Add the steps of this container here.
"""

_DOCKERFILE = """FROM alpine

ADD scripts/pipeline.sh /usr/bin/pipeline.sh
ADD resources resources

RUN chmod +x /usr/bin/pipeline.sh

CMD [ "sh", "-c", "pipeline.sh" ]
ENTRYPOINT []
"""


@dataclass(frozen=True)
class ContainerCmdArgs:
    """The LIFECYCLE/ACTION/PIPELINE-NAME triple naming a pipeline."""

    lifecycle: str
    action: str
    pipeline: str


@dataclass
class BuildContainerOptions:
    """Options of a container image build."""

    name: str = ""
    directory: str = "."
    build_all_containers: bool = False
    engine: str = "docker"
    buildx: bool = False
    push: bool = False
    build_args: str = ""


def parse_container_cmd_args(value: str) -> ContainerCmdArgs:
    """Split ``LIFECYCLE/ACTION/PIPELINE-NAME`` into its parts."""
    parts = value.split("/")
    if len(parts) != 3:
        raise PromiseError(
            f"invalid pipeline format: {value}, expected format: LIFECYCLE/ACTION/PIPELINE-NAME"
        )
    lifecycle, action, pipeline = parts
    return ContainerCmdArgs(lifecycle=lifecycle, action=action, pipeline=pipeline)


def _entry_name(entry: Any) -> str:
    return entry if isinstance(entry, str) else entry.name


def find_container(dir_entries: Iterable[Any] | None, containers: Sequence[Container], name: str = "") -> int:
    """Return the index of the container to build.

    ``dir_entries`` are the container directories of the pipeline, given as
    names or as objects with a ``name`` attribute.
    """
    names = [_entry_name(entry) for entry in dir_entries or ()]
    if not names:
        raise PromiseError("no container found in path")

    if len(names) == 1:
        if name and name != names[0]:
            raise PromiseError(f"container {name} not found in pipeline")
        name = names[0]

    if not name:
        raise PromiseError(
            "more than one container exists for this pipeline, please provide a name with --name"
        )

    index = next((i for i, container in enumerate(containers) if container.name == name), None)
    if index is None:
        raise PromiseError(f"container {name} not found in pipeline")

    if name not in names:
        raise PromiseError(f"directory entry not found for container {name}")
    return index


def get_pipeline_idx(pipelines: Sequence[Pipeline], pipeline_name: str) -> int:
    """Return the index of the pipeline called ``pipeline_name``."""
    for index, pipeline in enumerate(pipelines):
        if pipeline.name == pipeline_name:
            return index
    raise PromiseError(
        f"Pipeline not found: {pipeline_name}. Check 'promise.yaml/workflows/metadata/name: "
        "<pipeline_name>' and pipeline folder name 'workflows/resource/[configure|]/<pipeline_name>' "
        "are in sync."
    )


def get_container_idx(pipeline: Pipeline, container_name: str) -> int | None:
    """Return the index of the named container, or None when absent."""
    return next(
        (i for i, container in enumerate(pipeline.containers) if container.name == container_name),
        None,
    )


def find_pipelines_for_lifecycle_action(args: ContainerCmdArgs, promise: Promise) -> tuple[list[Pipeline], int]:
    """Return the pipelines of the lifecycle and action, and the named one's index."""
    pipelines: list[Pipeline] = []
    if args.lifecycle in LIFECYCLES and args.action in ACTIONS:
        pipelines = promise.workflow(args.lifecycle, args.action)
    return pipelines, get_pipeline_idx(pipelines, args.pipeline)


def retrieve_pipeline(promise: Promise, args: ContainerCmdArgs) -> Pipeline:
    """Return the pipeline that ``args`` names."""
    pipelines, index = find_pipelines_for_lifecycle_action(args, promise)
    return pipelines[index]


def validate_engine(engine: str) -> None:
    """Check that ``engine`` is supported and can be found on the PATH."""
    if engine not in SUPPORTED_ENGINES:
        raise PromiseError(f"unsupported container engine: {engine}")
    if shutil.which(engine) is None:
        raise PromiseError(f"{engine} CLI not found in PATH")


def builder_command(
    opts: BuildContainerOptions, container_image: str, pipeline_dir: str | os.PathLike, container_name: str
) -> list[str]:
    """The command line that builds one container image."""
    build_command = ["build"]
    build_args = ["--tag", container_image, os.path.join(pipeline_dir, container_name)]
    if opts.buildx:
        build_command = ["buildx", "build"]
        if opts.push:
            build_args.append("--push")
    build_args.extend(opts.build_args.split())
    return [opts.engine, *build_command, *build_args]


def _containers_to_build(opts: BuildContainerOptions, args: Sequence[str]) -> list[str]:
    if not opts.build_all_containers:
        return [args[0]]
    found = []
    for lifecycle in LIFECYCLES:
        for action in ACTIONS:
            workflow_dir = Path(opts.directory, "workflows", lifecycle, action)
            if not workflow_dir.exists():
                continue
            found.extend(f"{lifecycle}/{action}/{entry}" for entry in sorted(os.listdir(workflow_dir)))
    return found


def build_container(opts: BuildContainerOptions, args: Sequence[str] = ()) -> list[str]:
    """Build, and push when asked, the container images; return their tags."""
    validate_engine(opts.engine)

    promise = load_promise_with_workflows(opts.directory)
    if not promise.has_workflows():
        raise PromiseError("no workflows found")

    if not args and not opts.build_all_containers:
        raise PromiseError("expected at least 1 argument")

    built = []
    for target in _containers_to_build(opts, args):
        container_args = parse_container_cmd_args(target)
        pipeline = retrieve_pipeline(promise, container_args)

        pipeline_dir = Path(
            opts.directory, "workflows", container_args.lifecycle, container_args.action, container_args.pipeline
        )
        entries = sorted(os.listdir(pipeline_dir))
        container = pipeline.containers[find_container(entries, pipeline.containers, opts.name)]

        print(f"Building container with tag {container.image}...")
        subprocess.run(builder_command(opts, container.image, pipeline_dir, container.name), check=True)

        if opts.push and not opts.buildx:
            print(f"Pushing container with tag {container.image}...")
            subprocess.run([opts.engine, "push", container.image], check=True)
        built.append(container.image)
    return built


def generate_container_name(image: str) -> str:
    """Derive a container name from an image reference."""
    return image.replace("/", "-").split(":")[0]


def files_generated_with_split(directory: str | os.PathLike) -> bool:
    """Whether the Promise in ``directory`` is kept in split files."""
    return Path(directory, API_FILE_NAME).exists() and Path(directory, DEPENDENCIES_FILE_NAME).exists()


def _parse_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise PromiseError(f"error converting YAML to JSON: {exc}") from exc


def _read_pipelines(path: Path) -> list[Pipeline]:
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError:
        return []
    if not isinstance(data, list):
        return []
    return [pipeline_from_dict(item) for item in data]


def _generate_pipeline_dir_files(
    promise_dir: str | os.PathLike, workflow_dir: Path, pipeline_name: str, container_name: str
) -> None:
    container_dir = Path(promise_dir, workflow_dir, pipeline_name, container_name)
    scripts_dir = container_dir / "scripts"
    scripts_dir.mkdir(parents=True, exist_ok=True)

    script = scripts_dir / PIPELINE_SCRIPT_FILE_NAME
    if not script.exists():
        script.write_text(_PIPELINE_SCRIPT)
        script.chmod(0o755)
    dockerfile = container_dir / "Dockerfile"
    if not dockerfile.exists():
        dockerfile.write_text(_DOCKERFILE)

    (container_dir / "resources").mkdir(exist_ok=True)


def generate_workflow(
    args: ContainerCmdArgs,
    container_name: str,
    image: str,
    overwrite: bool = False,
    directory: str | os.PathLike = ".",
) -> Path:
    """Add a container to a pipeline and lay out its files; return the file written."""
    if args.lifecycle not in LIFECYCLES:
        raise PromiseError(f"invalid lifecycle: {args.lifecycle}, expected one of: promise, resource")
    if args.action not in ACTIONS:
        raise PromiseError(f"invalid action: {args.action}, expected one of: configure, delete")
    if not args.pipeline:
        raise PromiseError("pipeline name cannot be empty")

    container = Container(name=container_name, image=image)
    workflow_dir = Path("workflows", args.lifecycle, args.action)
    split = files_generated_with_split(directory)
    file_path = Path(directory, workflow_dir, WORKFLOW_FILE_NAME) if split else Path(directory, PROMISE_FILE_NAME)

    pipelines: list[Pipeline] = []
    index: int | None = None
    promise: Promise | None = None
    if split:
        if file_exists(file_path):
            pipelines = _read_pipelines(file_path)
            index = get_pipeline_idx(pipelines, args.pipeline)
    else:
        promise = promise_from_dict(_parse_yaml(file_path.read_text()))
        pipelines, index = find_pipelines_for_lifecycle_action(args, promise)

    if index is not None:
        pipeline = pipelines[index]
        container_index = get_container_idx(pipeline, container.name)
        if container_index is None:
            pipeline.containers.append(container)
        elif not overwrite:
            raise PromiseError(f"image '{container.name}' already exists in Pipeline '{args.pipeline}'")
        else:
            pipeline.containers[container_index] = container
    else:
        pipelines.append(Pipeline(name=args.pipeline, containers=[container]))

    if promise is None:
        document: Any = pipelines_to_unstructured(pipelines)
    else:
        promise.set_workflow(args.lifecycle, args.action, pipelines)
        document = promise.to_dict()

    _generate_pipeline_dir_files(directory, workflow_dir, args.pipeline, container_name)
    file_path.write_text(yaml.safe_dump(document, default_flow_style=False, sort_keys=True))
    print(f"generated the {args.lifecycle}/{args.action}/{args.pipeline}/{container_name} in {file_path} ")
    return file_path


def add_container(
    pipeline_input: str,
    image: str,
    container_name: str | None = None,
    directory: str | os.PathLike = ".",
) -> Path:
    """Add a container to the named pipeline; return the path of its script."""
    name = container_name or generate_container_name(image)
    args = parse_container_cmd_args(pipeline_input)
    generate_workflow(args, name, image, False, directory)

    script_path = Path(
        "workflows", args.lifecycle, args.action, args.pipeline, name, "scripts", PIPELINE_SCRIPT_FILE_NAME
    )
    print(f"Customise your container by editing {script_path} ")
    print("Don't forget to build and push your image!")
    return script_path