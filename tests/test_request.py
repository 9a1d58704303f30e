import pytest
import yaml

from kratixcli.aspects.request import (
    MissingEnvironmentError,
    crossplane_main,
    get_env_or_die,
    operator_main,
    transform_input_to_output,
)

TEST_OBJECT = """\
apiVersion: marketplace.kratix.io/v1alpha1
kind: TestObject
metadata:
  name: test-object
  namespace: non-default
  labels:
    app.kubernetes.io/name: test-object
    keyy: value
  annotations:
    image-registry: ghcr.io
spec:
  number: 7
  field: value
  nested:
    field: value
  arr:
  - field: value
"""

EXPECTED_OUTPUT = """\
apiVersion: example.com/v1
kind: Example
metadata:
  annotations:
    image-registry: ghcr.io
  labels:
    app.kubernetes.io/name: test-object
    keyy: value
  name: test-object
  namespace: default
spec:
  arr:
  - field: value
  field: value
  nested:
    field: value
  number: 7
"""

OPERATOR_VARS = {
    "OPERATOR_GROUP": "example.com",
    "OPERATOR_VERSION": "v1",
    "OPERATOR_KIND": "Example",
}

XRD_VARS = {
    "XRD_GROUP": "example.com",
    "XRD_VERSION": "v1",
    "XRD_KIND": "Example",
}


@pytest.fixture
def io_files(tmp_path, monkeypatch):
    input_file = tmp_path / "test-object.yaml"
    input_file.write_text(TEST_OBJECT)
    output_file = tmp_path / "output.yaml"
    monkeypatch.setenv("KRATIX_INPUT_FILE", str(input_file))
    monkeypatch.setenv("KRATIX_OUTPUT_FILE", str(output_file))
    return input_file, output_file


@pytest.fixture
def operator_env(io_files, monkeypatch):
    for key, value in OPERATOR_VARS.items():
        monkeypatch.setenv(key, value)
    return io_files


@pytest.fixture
def xrd_env(io_files, monkeypatch):
    for key, value in XRD_VARS.items():
        monkeypatch.setenv(key, value)
    return io_files


def test_operator_creates_object_file(operator_env):
    _, output_file = operator_env
    assert operator_main() == 0
    assert output_file.read_text() == EXPECTED_OUTPUT


def test_crossplane_creates_object_file(xrd_env):
    _, output_file = xrd_env
    assert crossplane_main() == 0
    assert output_file.read_text() == EXPECTED_OUTPUT


@pytest.mark.parametrize("main", [operator_main, crossplane_main])
def test_default_input_file_is_read(main, operator_env, xrd_env, monkeypatch, capsys):
    monkeypatch.delenv("KRATIX_INPUT_FILE")
    assert main() == 1
    assert "Failed to read object file from /kratix/input/object.yaml" in capsys.readouterr().err


@pytest.mark.parametrize("main", [operator_main, crossplane_main])
def test_default_output_file_is_written(main, operator_env, xrd_env, monkeypatch, capsys):
    monkeypatch.delenv("KRATIX_OUTPUT_FILE")
    assert main() == 1
    assert "Failed to write object file to /kratix/output/object.yaml" in capsys.readouterr().err


@pytest.mark.parametrize("env_var", ["OPERATOR_GROUP", "OPERATOR_VERSION", "OPERATOR_KIND"])
def test_operator_requires_env_vars(env_var, operator_env, monkeypatch, capsys):
    monkeypatch.delenv(env_var)
    assert operator_main() == 1
    assert f"Expected {env_var} to be set" in capsys.readouterr().err


@pytest.mark.parametrize("env_var", ["XRD_GROUP", "XRD_VERSION", "XRD_KIND"])
def test_crossplane_requires_env_vars(env_var, xrd_env, monkeypatch, capsys):
    monkeypatch.delenv(env_var)
    assert crossplane_main() == 1
    assert f"Expected {env_var} to be set" in capsys.readouterr().err


def test_get_env_or_die_returns_value(monkeypatch):
    monkeypatch.setenv("SOME_ASPECT_VAR", "value")
    assert get_env_or_die("SOME_ASPECT_VAR") == "value"


def test_get_env_or_die_rejects_empty(monkeypatch):
    monkeypatch.setenv("SOME_ASPECT_VAR", "")
    with pytest.raises(MissingEnvironmentError, match="Expected SOME_ASPECT_VAR to be set"):
        get_env_or_die("SOME_ASPECT_VAR")


def test_missing_spec_becomes_empty_mapping(io_files):
    input_file, output_file = io_files
    input_file.write_text("kind: Thing\nmetadata:\n  name: bare\n")
    result = transform_input_to_output("example.com", "v1", "Example")
    assert result["spec"] == {}
    written = yaml.safe_load(output_file.read_text())
    assert written == {
        "apiVersion": "example.com/v1",
        "kind": "Example",
        "metadata": {"name": "bare", "namespace": "default"},
        "spec": {},
    }


def test_invalid_yaml_is_rejected(io_files):
    input_file, _ = io_files
    input_file.write_text("not valid")
    with pytest.raises(ValueError, match="Failed to unmarshal object file"):
        transform_input_to_output("example.com", "v1", "Example")