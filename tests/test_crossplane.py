import pytest
import yaml

from kratixcli.crossplane import (
    MANDATORY_ADDITIONAL_CLAIM_FIELDS,
    crossplane_env_vars,
    crossplane_flags,
    generate_crd_from_xrd,
    generate_dependencies_from_compositions,
    get_xrd,
    get_xrd_stored_version,
)
from kratixcli.promise import PromiseError

XRD = {
    "apiVersion": "apiextensions.crossplane.io/v1",
    "kind": "CompositeResourceDefinition",
    "metadata": {"name": "xbuckets.example.com"},
    "spec": {
        "group": "example.com",
        "names": {"kind": "XBucket", "plural": "xbuckets"},
        "claimNames": {"kind": "Bucket", "plural": "buckets"},
        "versions": [
            {"name": "v1alpha1", "served": False, "referenceable": False},
            {
                "name": "v1",
                "served": True,
                "referenceable": True,
                "schema": {
                    "openAPIV3Schema": {
                        "type": "object",
                        "properties": {
                            "spec": {
                                "type": "object",
                                "properties": {"region": {"type": "string"}},
                            }
                        },
                    }
                },
            },
        ],
    },
}


@pytest.fixture
def xrd_file(tmp_path):
    path = tmp_path / "xrd.yaml"
    path.write_text(yaml.safe_dump(XRD))
    return path


def test_get_xrd_round_trip(xrd_file):
    assert get_xrd(xrd_file) == XRD


def test_get_xrd_missing_file(tmp_path):
    with pytest.raises(PromiseError, match="failed to read file"):
        get_xrd(tmp_path / "nope.yaml")


def test_get_xrd_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("key: [unclosed")
    with pytest.raises(PromiseError, match="failed to unmarshal file"):
        get_xrd(path)


def test_stored_version_is_first_served(xrd_file):
    version = get_xrd_stored_version(get_xrd(xrd_file))
    assert version["name"] == "v1"
    assert version["served"] is True


def test_no_served_version():
    xrd = {"spec": {"versions": [{"name": "v1", "served": False}]}}
    with pytest.raises(PromiseError, match="no served version found in XRD"):
        get_xrd_stored_version(xrd)


def test_generate_crd_from_xrd():
    version = get_xrd_stored_version(XRD)
    crd = generate_crd_from_xrd(version, "syntasso.io", "S3Bucket", "s3buckets")
    assert crd["kind"] == "CustomResourceDefinition"
    assert crd["metadata"]["name"] == "s3buckets.syntasso.io"
    assert crd["spec"]["group"] == "syntasso.io"
    assert crd["spec"]["scope"] == "Namespaced"
    assert crd["spec"]["names"] == {"plural": "s3buckets", "singular": "s3bucket", "kind": "S3Bucket"}
    versions = crd["spec"]["versions"]
    assert len(versions) == 1
    assert versions[0]["name"] == "v1"
    assert versions[0]["served"] and versions[0]["storage"]

    props = versions[0]["schema"]["openAPIV3Schema"]["properties"]["spec"]["properties"]
    assert props["region"] == {"type": "string"}
    assert set(MANDATORY_ADDITIONAL_CLAIM_FIELDS) <= set(props)
    assert props["compositeDeletePolicy"]["default"] == "Background"
    assert props["resourceRef"]["required"] == ["apiVersion", "kind", "name"]


def test_generate_crd_does_not_change_the_xrd():
    version = get_xrd_stored_version(XRD)
    generate_crd_from_xrd(version, "syntasso.io", "Database", "databases")
    props = XRD["spec"]["versions"][1]["schema"]["openAPIV3Schema"]["properties"]["spec"]["properties"]
    assert list(props) == ["region"]


def test_generate_crd_default_plural():
    version = get_xrd_stored_version(XRD)
    crd = generate_crd_from_xrd(version, "syntasso.io", "Database", "")
    assert crd["spec"]["names"]["plural"] == "databases"
    assert crd["metadata"]["name"] == "databases.syntasso.io"


def test_generate_crd_without_spec_schema():
    with pytest.raises(PromiseError):
        generate_crd_from_xrd({"name": "v1", "schema": {"openAPIV3Schema": {}}}, "g.io", "K", "ks")


def test_dependencies_from_compositions(tmp_path):
    first = {"apiVersion": "apiextensions.crossplane.io/v1", "kind": "Composition", "metadata": {"name": "a"}}
    second = {"apiVersion": "apiextensions.crossplane.io/v1", "kind": "Composition", "metadata": {"name": "b"}}
    path = tmp_path / "compositions.yaml"
    path.write_text(yaml.safe_dump_all([first, second], explicit_start=True))
    assert generate_dependencies_from_compositions(path) == [first, second]


def test_dependencies_from_missing_compositions(tmp_path):
    with pytest.raises(PromiseError, match="failed to read file"):
        generate_dependencies_from_compositions(tmp_path / "missing.yaml")


def test_env_vars():
    env = crossplane_env_vars(XRD, get_xrd_stored_version(XRD))
    assert env == [
        {"name": "XRD_GROUP", "value": "example.com"},
        {"name": "XRD_VERSION", "value": "v1"},
        {"name": "XRD_KIND", "value": "Bucket"},
    ]


def test_flags():
    assert crossplane_flags("xrd.yaml") == "--xrd xrd.yaml"
    assert (
        crossplane_flags("xrd.yaml", "composition.yaml", True)
        == "--xrd xrd.yaml --compositions composition.yaml --skip-dependencies"
    )