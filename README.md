# kratixcli

Tooling for authoring Kratix Promises: add containers to a Promise's
workflows, build those containers with docker or podman, assemble a
Promise from files laid out with `--split`, and run the small pipeline
"aspects" that turn a resource request into an operator, Crossplane or
Terraform module object.

## Installation

```
pip install .
```

Running the tests:

```
pip install ".[test]"
pytest
```

## The `kratix` command

### Adding a container to a workflow

```
kratix add container LIFECYCLE/ACTION/PIPELINE-NAME --image CONTAINER-IMAGE [--name NAME] [--dir DIR]
```

`LIFECYCLE` is `promise` or `resource`; `ACTION` is `configure` or
`delete`. The container is appended to the named pipeline, which is
created if it does not exist yet; adding a container whose name is
already in the pipeline is an error. Without `--name`, the name is
derived from the image: `syntasso/postgres-resource:v1.0.0` becomes
`syntasso-postgres-resource`.

When the directory holds both `api.yaml` and `dependencies.yaml` (a
Promise laid out with `--split`), the pipeline is written to
`workflows/LIFECYCLE/ACTION/workflow.yaml`; otherwise `promise.yaml` is
updated in place. In both cases a skeleton is generated under
`workflows/LIFECYCLE/ACTION/PIPELINE-NAME/NAME/` with a `Dockerfile`, a
`scripts/pipeline.sh` and an empty `resources/` directory. Existing
`Dockerfile` and `pipeline.sh` files are left untouched.

```
kratix add container resource/configure/instance --image syntasso/postgres-resource:v1.0.0
kratix add container promise/configure/pipeline0 --image syntasso/postgres-resource:v1.0.0 --name deploy-deps
```

### Building containers

```
kratix build container LIFECYCLE/ACTION/PIPELINE-NAME [--name NAME] [--dir DIR]
kratix build container --all [--dir DIR]
```

Options:

- `--engine docker|podman` — the container engine to run (default `docker`);
  it must be on `PATH`.
- `--buildx` — build with `buildx build`.
- `--push` — push the image after building; with `--buildx` the push is
  part of the build command.
- `--build-args "..."` — extra arguments appended to the build command.

The image tag is the container's `image` in the pipeline. When a
pipeline directory holds more than one container, `--name` selects which
one to build. `--all` builds every pipeline directory found under
`workflows/`. A Promise with no workflows at all is an error.

### Building a Promise

```
kratix build promise PROMISE-NAME [--dir DIR] [--output FILE]
```

Combines `api.yaml`, `dependencies.yaml` and the
`workflows/*/*/workflow.yaml` files of a split Promise into a single
Promise document, printed to standard output or written to `--output`.
If `promise.yaml` exists it is used as the starting point instead of the
workflow files. Missing or empty `api.yaml` and `dependencies.yaml`
files are skipped.

Errors are printed as `Error: ...` on standard error, with exit status 1.

## Pipeline aspects

These commands run inside a Kratix pipeline container. Each reads the
request from `KRATIX_INPUT_FILE` (default `/kratix/input/object.yaml`).

### `kratix-operator-aspect` and `kratix-crossplane-aspect`

Copy the request's name, labels, annotations and `spec` into a new object
of the given group, version and kind in the `default` namespace, written
to `KRATIX_OUTPUT_FILE` (default `/kratix/output/object.yaml`). A missing
`spec` is written as an empty mapping.

| Command                    | Required environment                                  |
|----------------------------|-------------------------------------------------------|
| `kratix-operator-aspect`   | `OPERATOR_GROUP`, `OPERATOR_VERSION`, `OPERATOR_KIND` |
| `kratix-crossplane-aspect` | `XRD_GROUP`, `XRD_VERSION`, `XRD_KIND`                |

```
OPERATOR_GROUP=example.com OPERATOR_VERSION=v1 OPERATOR_KIND=Example \
KRATIX_INPUT_FILE=request.yaml KRATIX_OUTPUT_FILE=out.yaml \
kratix-operator-aspect
```

The command exits with status 1 and a message naming the variable when
one of them is unset or empty, or when the input cannot be read or the
output cannot be written.

### `kratix-terraform-module-aspect`

Turns the request into a Terraform JSON module call. Requires
`MODULE_SOURCE` and `MODULE_VERSION` (exit status 2 when either is
unset); writes `<kind>_<namespace>_<name>.tf.json` (lower case) into
`KRATIX_OUTPUT_DIR` (default `/kratix/output`). The module `source` is
`git::<MODULE_SOURCE>?ref=<MODULE_VERSION>`, and every `spec` field is
passed as a module argument, except null values and empty lists. Other
failures exit with status 1.

```
MODULE_SOURCE=example.com MODULE_VERSION=1.0.0 \
KRATIX_INPUT_FILE=request.yaml KRATIX_OUTPUT_DIR=out \
kratix-terraform-module-aspect
```

## Using the library

The same operations are available from Python:

- `kratixcli.promise` — the `Promise`, `Pipeline` and `Container`
  dataclasses, `promise_from_dict`, `load_promise_with_workflows`,
  `load_workflows` and `build_promise`.
- `kratixcli.container` — `add_container`, `generate_workflow`,
  `build_container`, `builder_command`, `find_container` and
  `parse_container_cmd_args`.
- `kratixcli.crossplane` — reading an XRD (`get_xrd`,
  `get_xrd_stored_version`), turning it into a Promise API CRD with the
  standard claim fields (`generate_crd_from_xrd`), reading Compositions as
  dependencies, and the claim aspect's environment (`crossplane_env_vars`).
- `kratixcli.helm` — the environment and resource configure workflow of
  the Helm rendering container (`helm_env_vars`,
  `generate_helm_resource_configure_pipeline`).

```python
from kratixcli.promise import load_promise_with_workflows
from kratixcli.container import parse_container_cmd_args, retrieve_pipeline

promise = load_promise_with_workflows(".")
pipeline = retrieve_pipeline(promise, parse_container_cmd_args("promise/configure/pipeline0"))
print([container.image for container in pipeline.containers])
```

Failures raise `kratixcli.promise.PromiseError`.

## What is not included

- `kratix init` accepts its `--group`, `--kind`, `--version`, `--plural`,
  `--dir` and `--split` options but has no subcommands: it only prints
  its help. There is no command that creates a new Promise, whether plain,
  from a Helm chart or from a Crossplane XRD. The Helm and Crossplane
  pieces exist only as the library functions listed above.
- Nothing fetches Helm charts or derives an API schema from a chart's
  values.