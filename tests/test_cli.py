import os

import pytest

from kratixcli.cli import main
from kratixcli.promise import load_promise_with_workflows, promise_from_dict

import yaml


@pytest.fixture
def split_dir(tmp_path):
    directory = tmp_path / "promise"
    directory.mkdir()
    (directory / "api.yaml").write_text("")
    (directory / "dependencies.yaml").write_text("")
    return directory


@pytest.fixture
def fake_engines(tmp_path, monkeypatch):
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    for engine in ("docker", "podman"):
        script = bin_dir / engine
        script.write_text(f'#!/bin/sh\necho fake-{engine} "$@"\n')
        script.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return bin_dir


def test_root_help(capsys):
    assert main([]) == 0
    assert "A CLI tool for Kratix" in capsys.readouterr().out


def test_init_without_subcommand_prints_help(capsys):
    assert main(["init"]) == 0
    assert "Command used to initialize Kratix resources" in capsys.readouterr().out


def test_add_container_requires_image(split_dir):
    with pytest.raises(SystemExit) as excinfo:
        main(["add", "container", "promise/configure/p", "--dir", str(split_dir)])
    assert excinfo.value.code == 2


def test_add_then_build_promise(split_dir, capsys):
    assert main(["add", "container", "promise/configure/pipeline0", "--image", "psql:latest",
                 "-n", "configure-image", "--dir", str(split_dir)]) == 0
    assert main(["add", "container", "resource/delete/pipeline0", "--image", "psql:latest",
                 "-n", "delete-image", "--dir", str(split_dir)]) == 0

    output = split_dir / "out.yaml"
    assert main(["build", "promise", "postgresql", "--dir", str(split_dir), "--output", str(output)]) == 0
    promise = promise_from_dict(yaml.safe_load(output.read_text()))
    assert promise.name == "postgresql"
    assert promise.kind == "Promise"
    assert promise.api_version == "platform.kratix.io/v1alpha1"

    configure = promise.workflow("promise", "configure")
    assert len(configure) == 1
    assert configure[0].name == "pipeline0"
    assert [(c.name, c.image) for c in configure[0].containers] == [("configure-image", "psql:latest")]
    delete = promise.workflow("resource", "delete")
    assert [(c.name, c.image) for c in delete[0].containers] == [("delete-image", "psql:latest")]
    assert promise.workflow("promise", "delete") == []
    assert promise.workflow("resource", "configure") == []


def test_invalid_workflow_file(split_dir, capsys):
    main(["add", "container", "promise/configure/pipeline0", "--image", "psql:latest",
          "-n", "configure-image", "--dir", str(split_dir)])
    (split_dir / "workflows/promise/configure/workflow.yaml").write_text("not valid")
    assert main(["build", "promise", "postgresql", "--dir", str(split_dir)]) == 1
    assert "failed to get promise configure workflow:" in capsys.readouterr().err


def test_build_container(split_dir, fake_engines, capfd):
    main(["add", "container", "promise/configure/postgresql", "--image",
          "syntasso/postgres-resource:v1.0.0", "--dir", str(split_dir)])
    capfd.readouterr()
    assert main(["build", "container", "promise/configure/postgresql", "--dir", str(split_dir)]) == 0
    out = capfd.readouterr().out
    assert "Building container with tag syntasso/postgres-resource:v1.0.0..." in out
    assert (
        f"fake-docker build --tag syntasso/postgres-resource:v1.0.0 "
        f"{split_dir}/workflows/promise/configure/postgresql/syntasso-postgres-resource"
    ) in out


def test_build_container_buildx_push(split_dir, fake_engines, capfd):
    main(["add", "container", "promise/configure/postgresql", "--image",
          "syntasso/postgres-resource:v1.0.0", "--dir", str(split_dir)])
    capfd.readouterr()
    assert main(["build", "container", "--dir", str(split_dir), "promise/configure/postgresql",
                 "--buildx", "--push"]) == 0
    out = capfd.readouterr().out
    assert (
        f"fake-docker buildx build --tag syntasso/postgres-resource:v1.0.0 "
        f"{split_dir}/workflows/promise/configure/postgresql/syntasso-postgres-resource --push"
    ) in out
    assert "fake-docker push" not in out


def test_build_container_push(split_dir, fake_engines, capfd):
    main(["add", "container", "promise/configure/postgresql", "--image",
          "syntasso/postgres-resource:v1.0.0", "--dir", str(split_dir)])
    capfd.readouterr()
    assert main(["build", "container", "--dir", str(split_dir), "promise/configure/postgresql", "--push"]) == 0
    out = capfd.readouterr().out
    assert "Pushing container with tag syntasso/postgres-resource:v1.0.0..." in out
    assert "fake-docker push syntasso/postgres-resource:v1.0.0" in out


def test_build_container_unsupported_engine(split_dir, capsys):
    assert main(["build", "container", "--dir", str(split_dir), "promise/configure/postgresql",
                 "--engine", "rancher"]) == 1
    assert "unsupported container engine: rancher" in capsys.readouterr().err


def test_build_container_engine_not_on_path(split_dir, tmp_path, monkeypatch, capsys):
    empty = tmp_path / "empty"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    assert main(["build", "container", "promise/configure/postgresql", "--dir", str(split_dir)]) == 1
    assert "docker CLI not found in PATH" in capsys.readouterr().err


def test_build_container_without_workflows(split_dir, fake_engines, capsys):
    assert main(["build", "container", "promise/configure/postgresql", "--dir", str(split_dir)]) == 1
    assert "no workflows found" in capsys.readouterr().err
    assert not load_promise_with_workflows(split_dir).has_workflows()