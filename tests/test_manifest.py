"""Tests for the kustomization model."""

from pathlib import Path

import pytest
import yaml

from kustomize_stage.exceptions import KustomizationParseError
from kustomize_stage.manifest import (
    GeneratorArgs,
    GeneratorFile,
    Kustomization,
    find_kustomization,
    read_kustomization,
)

KUSTOMIZATION = """---
apiVersion: kustomize.config.k8s.io/v1beta1
kind: Kustomization
namespace: apps
resources:
- deployment.yaml
- ../base
- github.com/kubernetes-sigs/kustomize/examples/multibases?ref=v1.0.6
- https://example.com/manifests/app.yaml
patches:
- path: patch.yaml
- patch: |-
    - op: replace
      path: /spec/replicas
      value: 3
  target:
    kind: Deployment
patchesStrategicMerge:
- |-
  apiVersion: apps/v1
  kind: Deployment
  metadata:
    name: app
- memory.yaml
configMapGenerator:
- name: app-env
  envs:
  - app.env
- name: app-config
  behavior: merge
  files:
  - credentials.pub=credentials.local.pub
  - setup.json
  literals:
  - LOG_LEVEL=debug
secretGenerator:
- name: app-secrets
  env: secrets.env
  files:
  - eyesonly.txt
"""


@pytest.mark.parametrize(
    ("entry", "expected"),
    [
        ("setup.json", GeneratorFile(path="setup.json")),
        (
            "credentials.pub=credentials.local.pub",
            GeneratorFile(path="credentials.local.pub", key="credentials.pub"),
        ),
        ("config/app.ini", GeneratorFile(path="config/app.ini")),
        # Only the first = separates the key
        ("a=b=c", GeneratorFile(path="b=c", key="a")),
    ],
)
def test_generator_file_parse(entry: str, expected: GeneratorFile) -> None:
    """Test parsing generator file entries."""
    result = GeneratorFile.parse(entry)
    assert result == expected
    assert str(result) == entry


@pytest.mark.parametrize("entry", ["=setup.json", "setup.json=", "="])
def test_generator_file_parse_invalid(entry: str) -> None:
    """Test parsing invalid generator file entries."""
    with pytest.raises(KustomizationParseError, match="must be 'key=path'"):
        GeneratorFile.parse(entry)


def test_parse_kustomization() -> None:
    """Test parsing the fields of a kustomization."""
    ks = Kustomization.parse_doc(yaml.safe_load(KUSTOMIZATION))
    assert [args.name for args in ks.config_map_generator] == [
        "app-env",
        "app-config",
    ]
    assert ks.config_map_generator[1].files == [
        GeneratorFile(path="credentials.local.pub", key="credentials.pub"),
        GeneratorFile(path="setup.json"),
    ]
    assert ks.secret_generator[0].env == "secrets.env"
    assert ks.resources[:2] == ["deployment.yaml", "../base"]
    assert [ref.path for ref in ks.patches] == ["patch.yaml", None]


def test_generator_references() -> None:
    """Test listing the files referenced by generators in document order."""
    ks = Kustomization.parse_doc(yaml.safe_load(KUSTOMIZATION))
    refs = list(ks.generator_references())
    assert [(ref.path, str(ref)) for ref in refs] == [
        ("app.env", "configMapGenerator[app-env].envs[app.env]"),
        (
            "credentials.local.pub",
            "configMapGenerator[app-config].files[credentials.pub=credentials.local.pub]",
        ),
        ("setup.json", "configMapGenerator[app-config].files[setup.json]"),
        ("secrets.env", "secretGenerator[app-secrets].envs[secrets.env]"),
        ("eyesonly.txt", "secretGenerator[app-secrets].files[eyesonly.txt]"),
    ]


def test_path_references() -> None:
    """Test remote references and inline patches are skipped."""
    ks = Kustomization.parse_doc(yaml.safe_load(KUSTOMIZATION))
    refs = list(ks.path_references())
    assert [(ref.field, ref.path, ref.directory_allowed) for ref in refs] == [
        ("resources", "deployment.yaml", True),
        ("resources", "../base", True),
        ("patchesStrategicMerge", "memory.yaml", False),
        ("patches", "patch.yaml", False),
    ]


@pytest.mark.parametrize(
    "doc",
    [
        None,
        {},
        {"resources": None, "configMapGenerator": None},
        {"apiVersion": "kustomize.config.k8s.io/v1beta1", "kind": "Kustomization"},
    ],
)
def test_parse_empty_kustomization(doc: dict | None) -> None:
    """Test documents with no relevant fields."""
    ks = Kustomization.parse_doc(doc)
    assert not list(ks.generator_references())
    assert not list(ks.path_references())


@pytest.mark.parametrize(
    ("doc", "match"),
    [
        (["resources"], "must be a mapping"),
        ({"resources": "deployment.yaml"}, "'resources' must be a list of strings"),
        ({"crds": [1, 2]}, "'crds' must be a list of strings"),
        ({"patches": ["patch.yaml"]}, "'patches' must be a list of objects"),
        ({"configMapGenerator": {"name": "a"}}, "'configMapGenerator' must be a list"),
        ({"secretGenerator": ["a"]}, "secretGenerator entry must be a mapping"),
        (
            {"configMapGenerator": [{"name": "a", "envs": "app.env"}]},
            r"configMapGenerator\[a\] field 'envs' must be a list of strings",
        ),
        (
            {"configMapGenerator": [{"name": "a", "files": ["=app.env"]}]},
            "must be 'key=path'",
        ),
        ({"secretGenerator": [{"name": "a", "env": ["a.env"]}]}, "Invalid.*env"),
        ({"helmCharts": {"name": "app"}}, "'helmCharts' must be a list"),
        ({"helmCharts": ["app"]}, "helmCharts entry must be a mapping"),
        (
            {"helmCharts": [{"name": "app", "valuesFile": ["values.yaml"]}]},
            "field 'valuesFile' must be a string",
        ),
        (
            {"helmCharts": [{"additionalValuesFiles": "values.yaml"}]},
            "field 'additionalValuesFiles' must be a list of strings",
        ),
        ({"helmGlobals": {"chartHome": 1}}, "field 'chartHome' must be a string"),
        ({"openapi": "schema.json"}, "openapi must be a mapping"),
    ],
)
def test_parse_invalid_kustomization(doc: object, match: str) -> None:
    """Test fields of the wrong type are rejected."""
    with pytest.raises(KustomizationParseError, match=match):
        Kustomization.parse_doc(doc)


def test_generator_entry_nulls() -> None:
    """Test empty generator fields decode to their defaults."""
    ks = Kustomization.parse_doc(
        {"configMapGenerator": [{"name": "a", "envs": None, "files": None}]}
    )
    assert ks.config_map_generator == [GeneratorArgs(name="a")]
    assert not list(ks.generator_references())


HELM = """helmGlobals:
  chartHome: ../charts
helmCharts:
- name: app
  valuesFile: values.yaml
  additionalValuesFiles:
  - values/prod.yaml
  valuesInline:
    replicas: 2
- name: podinfo
  valuesFile: https://example.com/podinfo/values.yaml
openapi:
  path: schema.json
"""


def test_helm_path_references() -> None:
    """Test the helm and openapi fields naming local files."""
    ks = Kustomization.parse_doc(yaml.safe_load(HELM))
    assert [chart.name for chart in ks.helm_charts] == ["app", "podinfo"]
    refs = list(ks.path_references())
    assert [(str(ref), ref.tree, ref.optional) for ref in refs] == [
        ("openapi.path[schema.json]", False, False),
        ("helmCharts[app].valuesFile[values.yaml]", False, False),
        ("helmCharts[app].additionalValuesFiles[values/prod.yaml]", False, False),
        ("helmGlobals.chartHome[../charts]", True, False),
    ]


def test_default_chart_home() -> None:
    """Test charts are looked up in the default chart home."""
    ks = Kustomization.parse_doc({"helmCharts": [{"name": "app"}]})
    refs = list(ks.path_references())
    assert [(str(ref), ref.tree, ref.optional) for ref in refs] == [
        ("helmGlobals.chartHome[charts]", True, True),
    ]


async def test_find_kustomization(tmp_path: Path) -> None:
    """Test the accepted kustomization file names and their precedence."""
    with pytest.raises(KustomizationParseError, match="No kustomization file"):
        await find_kustomization(tmp_path)

    (tmp_path / "Kustomization").write_text("resources: []\n")
    assert await find_kustomization(tmp_path) == tmp_path / "Kustomization"

    (tmp_path / "kustomization.yml").write_text("resources: []\n")
    assert await find_kustomization(tmp_path) == tmp_path / "kustomization.yml"

    (tmp_path / "kustomization.yaml").write_text("resources: []\n")
    assert await find_kustomization(tmp_path) == tmp_path / "kustomization.yaml"


async def test_read_kustomization(tmp_path: Path) -> None:
    """Test reading a kustomization from disk."""
    path = tmp_path / "kustomization.yaml"
    path.write_text(KUSTOMIZATION)
    ks = await read_kustomization(path)
    assert len(ks.config_map_generator) == 2


async def test_read_kustomization_invalid_yaml(tmp_path: Path) -> None:
    """Test reading a kustomization that is not valid yaml."""
    path = tmp_path / "kustomization.yaml"
    path.write_text("configMapGenerator: [\n")
    with pytest.raises(KustomizationParseError, match="Unable to parse kustomization"):
        await read_kustomization(path)


async def test_read_kustomization_invalid_field(tmp_path: Path) -> None:
    """Test the error names the file with the invalid field."""
    path = tmp_path / "kustomization.yaml"
    path.write_text("resources: deployment.yaml\n")
    with pytest.raises(
        KustomizationParseError, match="Invalid kustomization .*kustomization.yaml"
    ):
        await read_kustomization(path)
